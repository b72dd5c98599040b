"""Username/password resolution.

:class:`CredentialResolver` takes values already present on the
:class:`~ghtoken.models.RequestDescriptor` and prompts for the rest. It
performs no network I/O; checking the credentials is left to the
two-factor probe that runs right after.
"""

from __future__ import annotations

from ghtoken.models import Credentials, PromptKind, RequestDescriptor
from ghtoken.prompt import Prompter, prompt_value


class CredentialResolver:
    """Resolve a :class:`~ghtoken.models.Credentials` pair for a descriptor.

    A non-empty ``descriptor.username`` / ``descriptor.password`` is used
    as-is. Anything else is prompted for, username first, re-prompting
    until the answer is non-empty.

    Args:
        prompter: Source of interactive input.
    """

    def __init__(self, prompter: Prompter) -> None:
        self._prompter = prompter

    def resolve(self, descriptor: RequestDescriptor) -> Credentials:
        """Return the username and password to authenticate with.

        Raises:
            PromptAborted: If either prompt is cancelled; nothing is returned.
        """
        username = self._resolve_one(descriptor, PromptKind.USERNAME)
        password = self._resolve_one(descriptor, PromptKind.PASSWORD)
        return Credentials(username=username, password=password)

    def _resolve_one(self, descriptor: RequestDescriptor, kind: PromptKind) -> str:
        supplied = getattr(descriptor, kind.value)
        if supplied:
            return supplied
        return prompt_value(self._prompter, kind, descriptor.prompt.for_kind(kind))
