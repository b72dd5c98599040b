"""End-to-end tests for AuthenticationOrchestrator, request_token and requires_code."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from ghtoken.auth.orchestrator import (
    AuthenticationOrchestrator,
    OrchestratorState,
    request_token,
    requires_code,
)
from ghtoken.config import build_descriptor
from ghtoken.exceptions import (
    InvalidConfig,
    ProbeFailed,
    PromptAborted,
    ProvisionFailed,
    TokenNotFound,
)
from ghtoken.models import PromptKind


@pytest.fixture(autouse=True)
def _quiet(quiet_output) -> None:
    return None


class _Recorder:
    """Completion callback that records every delivery."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, Any]] = []

    def __call__(self, err: Any, result: Any) -> None:
        self.calls.append((err, result))


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_prompted_credentials_no_2fa(self, client, fake_api, make_prompter) -> None:
        prompter = make_prompter(username=["alice"], password=["secret"])
        token = request_token({"name": "t1"}, client=client, prompter=prompter)

        assert token == "token-1"
        assert prompter.kinds() == ["username", "password"]
        assert PromptKind.CODE not in [kind for kind, _ in prompter.calls]
        assert [r.method for r in fake_api.requests] == ["GET", "POST"]
        assert not client.has_auth

    def test_supplied_code_with_2fa(self, make_api, make_client, make_prompter) -> None:
        api = make_api(otp="123456")
        gh = make_client(api)
        prompter = make_prompter(username=["alice"], password=["secret"])

        token = request_token({"name": "t1", "code": "123456"}, client=gh, prompter=prompter)

        assert token == "token-1"
        assert "code" not in prompter.kinds()
        post = api.requests_for("POST")[0]
        assert post.headers["X-GitHub-OTP"] == "123456"
        # The probe itself goes out without a code.
        assert "X-GitHub-OTP" not in api.requests_for("GET")[0].headers
        assert not gh.has_auth

    def test_prompted_code_with_2fa(self, make_api, make_client, make_prompter) -> None:
        api = make_api(otp="654321")
        gh = make_client(api)
        prompter = make_prompter(code=["654321"])

        token = request_token(
            {"name": "t1", "username": "alice", "password": "secret", "prompt": {"code": "OTP"}},
            client=gh,
            prompter=prompter,
        )
        assert token == "token-1"
        assert prompter.calls == [(PromptKind.CODE, "OTP")]

    def test_duplicate_conflict_recovers_token(self, make_api, make_client, make_prompter) -> None:
        api = make_api(authorizations=[{"note": "t1", "token": "abc"}])
        gh = make_client(api)
        prompter = make_prompter(username=["alice"], password=["secret"])

        assert request_token({"name": "t1"}, client=gh, prompter=prompter) == "abc"
        assert [r.method for r in api.requests] == ["GET", "POST", "GET"]
        assert not gh.has_auth

    def test_second_run_returns_same_token(self, client, fake_api, make_prompter) -> None:
        options = {"name": "ci-token", "username": "alice", "password": "secret"}
        first = request_token(options, client=client, prompter=make_prompter())
        second = request_token(options, client=client, prompter=make_prompter())
        assert first == second
        assert fake_api.created_notes == ["ci-token"]

    def test_scopes_and_url_are_sent(self, client, fake_api, make_prompter) -> None:
        request_token(
            {
                "name": "t1",
                "scopes": ["repo"],
                "url": "https://example.com",
                "username": "alice",
                "password": "secret",
            },
            client=client,
            prompter=make_prompter(),
        )
        record = fake_api.authorizations[0]
        assert record["scopes"] == ["repo"]
        assert record["note_url"] == "https://example.com"


# ---------------------------------------------------------------------------
# State machine and auth clearing
# ---------------------------------------------------------------------------


class TestOrchestratorStates:
    def test_success_ends_done(self, client, make_prompter) -> None:
        orchestrator = AuthenticationOrchestrator(client, make_prompter())
        assert orchestrator.state == OrchestratorState.IDLE
        token = orchestrator.run(
            build_descriptor({"name": "t", "username": "alice", "password": "secret"})
        )
        assert token.value == "token-1"
        assert token.created is True
        assert orchestrator.state == OrchestratorState.DONE
        assert not client.has_auth
        assert not client.lock.locked()

    def test_states_visited_in_order(self, client, make_prompter) -> None:
        orchestrator = AuthenticationOrchestrator(client, make_prompter())
        seen: list[OrchestratorState] = []
        original = orchestrator._enter

        def _spy(state: OrchestratorState) -> None:
            seen.append(state)
            original(state)

        orchestrator._enter = _spy  # type: ignore[method-assign]
        orchestrator.run(build_descriptor({"name": "t", "username": "alice", "password": "secret"}))
        assert seen == [
            OrchestratorState.IDLE,
            OrchestratorState.CREDENTIALS_RESOLVED,
            OrchestratorState.PROBE_DONE,
            OrchestratorState.HEADERS_READY,
            OrchestratorState.TOKEN_READY,
            OrchestratorState.DONE,
        ]

    def test_auth_set_during_probe_and_cleared_after(self, client, make_prompter) -> None:
        seen_auth: list[bool] = []
        orchestrator = AuthenticationOrchestrator(client, make_prompter())
        with patch(
            "ghtoken.auth.orchestrator.TwoFactorProbe.probe",
            autospec=True,
            side_effect=lambda self: seen_auth.append(client.has_auth) or False,
        ):
            orchestrator.run(
                build_descriptor({"name": "t", "username": "alice", "password": "secret"})
            )
        assert seen_auth == [True]
        assert not client.has_auth

    def test_prompt_abort_fails_and_clears(self, client, fake_api, make_prompter) -> None:
        orchestrator = AuthenticationOrchestrator(client, make_prompter(username=["alice"]))
        with pytest.raises(PromptAborted):
            orchestrator.run(build_descriptor({"name": "t"}))
        assert orchestrator.state == OrchestratorState.FAILED
        assert fake_api.requests == []
        assert not client.has_auth
        assert not client.lock.locked()

    def test_probe_failure_skips_remaining_steps(self, client, fake_api, make_prompter) -> None:
        prompter = make_prompter()
        orchestrator = AuthenticationOrchestrator(client, prompter)
        with pytest.raises(ProbeFailed):
            orchestrator.run(build_descriptor({"name": "t", "username": "alice", "password": "bad"}))
        assert orchestrator.state == OrchestratorState.FAILED
        assert [r.method for r in fake_api.requests] == ["GET"]
        assert prompter.calls == []
        assert not client.has_auth

    def test_code_prompt_abort_fails_and_clears(self, make_api, make_client, make_prompter) -> None:
        api = make_api(otp="1")
        gh = make_client(api)
        orchestrator = AuthenticationOrchestrator(gh, make_prompter())
        with pytest.raises(PromptAborted):
            orchestrator.run(build_descriptor({"name": "t", "username": "alice", "password": "secret"}))
        assert orchestrator.state == OrchestratorState.FAILED
        assert api.requests_for("POST") == []
        assert not gh.has_auth

    def test_wrong_code_is_provision_failed(self, make_api, make_client, make_prompter) -> None:
        gh = make_client(make_api(otp="111111"))
        orchestrator = AuthenticationOrchestrator(gh, make_prompter())
        with pytest.raises(ProvisionFailed):
            orchestrator.run(
                build_descriptor(
                    {"name": "t", "username": "alice", "password": "secret", "code": "000000"}
                )
            )
        assert orchestrator.state == OrchestratorState.FAILED
        assert not gh.has_auth

    def test_token_not_found_fails_and_clears(self, make_client, make_prompter) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(422, json={"message": "Validation Failed"})
            return httpx.Response(200, json=[])

        gh = make_client(handler)
        orchestrator = AuthenticationOrchestrator(gh, make_prompter())
        with pytest.raises(TokenNotFound):
            orchestrator.run(build_descriptor({"name": "t", "username": "u", "password": "p"}))
        assert orchestrator.state == OrchestratorState.FAILED
        assert not gh.has_auth

    def test_keyboard_interrupt_still_clears(self, client, make_prompter) -> None:
        prompter = make_prompter()
        prompter.prompt_line = MagicMock(side_effect=KeyboardInterrupt)  # type: ignore[method-assign]
        orchestrator = AuthenticationOrchestrator(client, prompter)
        with pytest.raises(KeyboardInterrupt):
            orchestrator.run(build_descriptor({"name": "t", "username": "alice"}))
        assert orchestrator.state == OrchestratorState.FAILED
        assert not client.has_auth
        assert not client.lock.locked()

    def test_orchestrator_reusable_after_failure(self, client, make_prompter) -> None:
        orchestrator = AuthenticationOrchestrator(client, make_prompter())
        with pytest.raises(ProbeFailed):
            orchestrator.run(build_descriptor({"name": "t", "username": "alice", "password": "bad"}))
        token = orchestrator.run(
            build_descriptor({"name": "t", "username": "alice", "password": "secret"})
        )
        assert token.value == "token-1"
        assert orchestrator.state == OrchestratorState.DONE


# ---------------------------------------------------------------------------
# request_token entry point
# ---------------------------------------------------------------------------


class TestRequestToken:
    @pytest.mark.parametrize(
        "options, message",
        [
            (None, "options object required"),
            ([], "options object required"),
            ({}, "name required"),
            ({"name": ""}, "name must be non-empty string"),
            ({"name": "t", "scopes": "repo"}, "scopes must be a sequence"),
            ({"name": "t", "url": 1}, "url must be a string"),
            ({"name": "t", "prompt": []}, "prompt must be an object"),
            ({"name": "t", "username": 1}, "username must be a string"),
            ({"name": "t", "password": 1}, "password must be a string"),
            ({"name": "t", "code": 123456}, "code must be a string"),
        ],
    )
    def test_invalid_options_raise_before_any_io(
        self, client, fake_api, make_prompter, options: Any, message: str
    ) -> None:
        prompter = make_prompter(username=["alice"], password=["secret"])
        callback = _Recorder()
        with pytest.raises(InvalidConfig, match=message):
            request_token(options, callback, client=client, prompter=prompter)
        assert fake_api.requests == []
        assert prompter.calls == []
        assert callback.calls == []

    def test_non_callable_callback_raises(self, client, fake_api) -> None:
        with pytest.raises(InvalidConfig, match="callback must be callable"):
            request_token({"name": "t"}, "not-callable", client=client)  # type: ignore[arg-type]
        assert fake_api.requests == []

    def test_callback_receives_token(self, client, make_prompter) -> None:
        callback = _Recorder()
        result = request_token(
            {"name": "t", "username": "alice", "password": "secret"},
            callback,
            client=client,
            prompter=make_prompter(),
        )
        assert result is None
        assert callback.calls == [(None, "token-1")]

    def test_callback_receives_error_once_after_clearing(self, client, make_prompter) -> None:
        auth_at_delivery: list[bool] = []
        recorder = _Recorder()

        def callback(err: Any, token: Any) -> None:
            auth_at_delivery.append(client.has_auth)
            recorder(err, token)

        request_token(
            {"name": "t", "username": "alice", "password": "bad"},
            callback,
            client=client,
            prompter=make_prompter(),
        )
        assert len(recorder.calls) == 1
        err, token = recorder.calls[0]
        assert isinstance(err, ProbeFailed)
        assert token is None
        assert auth_at_delivery == [False]

    def test_prompt_abort_delivered_to_callback(self, client, make_prompter) -> None:
        callback = _Recorder()
        request_token({"name": "t"}, callback, client=client, prompter=make_prompter())
        assert len(callback.calls) == 1
        assert isinstance(callback.calls[0][0], PromptAborted)

    def test_errors_raise_without_callback(self, client, make_prompter) -> None:
        with pytest.raises(ProbeFailed):
            request_token(
                {"name": "t", "username": "alice", "password": "bad"},
                client=client,
                prompter=make_prompter(),
            )
        assert not client.has_auth

    def test_callback_exception_is_not_redelivered(self, client, make_prompter) -> None:
        calls: list[Any] = []

        def callback(err: Any, token: Any) -> None:
            calls.append((err, token))
            raise RuntimeError("callback bug")

        with pytest.raises(RuntimeError, match="callback bug"):
            request_token(
                {"name": "t", "username": "alice", "password": "secret"},
                callback,
                client=client,
                prompter=make_prompter(),
            )
        assert calls == [(None, "token-1")]

    def test_caller_options_not_mutated(self, client, make_prompter) -> None:
        options = {"name": "t", "username": "alice", "password": "secret"}
        request_token(options, client=client, prompter=make_prompter())
        assert options == {"name": "t", "username": "alice", "password": "secret"}

    def test_builds_and_closes_own_client(self, fake_api, make_prompter) -> None:
        from ghtoken.client import GitHubClient

        created: list[GitHubClient] = []
        real_init = GitHubClient.__init__

        def _init(self, settings=None, transport=None):
            real_init(self, settings, transport=httpx.MockTransport(fake_api))
            created.append(self)

        with patch.object(GitHubClient, "__init__", _init):
            token = request_token(
                {"name": "t", "username": "alice", "password": "secret"},
                prompter=make_prompter(),
            )
        assert token == "token-1"
        assert len(created) == 1
        assert created[0]._client is None


# ---------------------------------------------------------------------------
# requires_code entry point
# ---------------------------------------------------------------------------


class TestRequiresCode:
    def test_false_without_2fa(self, client) -> None:
        assert requires_code({"username": "alice", "password": "secret"}, client=client) is False
        assert not client.has_auth

    def test_true_with_2fa(self, make_api, make_client) -> None:
        api = make_api(otp="1")
        gh = make_client(api)
        assert requires_code({"username": "alice", "password": "secret"}, client=gh) is True
        assert [r.method for r in api.requests] == ["GET"]
        assert not gh.has_auth

    def test_failure_propagates(self, client) -> None:
        with pytest.raises(ProbeFailed):
            requires_code({"username": "alice", "password": "bad"}, client=client)
        assert not client.has_auth

    def test_callback(self, client) -> None:
        callback = _Recorder()
        requires_code({"username": "alice", "password": "secret"}, callback, client=client)
        assert callback.calls == [(None, False)]

    def test_callback_receives_failure(self, client) -> None:
        callback = _Recorder()
        requires_code({"username": "alice", "password": "bad"}, callback, client=client)
        assert isinstance(callback.calls[0][0], ProbeFailed)
        assert callback.calls[0][1] is None

    @pytest.mark.parametrize(
        "auth",
        [None, [], {}, {"username": "alice"}, {"password": "x"}, {"username": 1, "password": "x"},
         {"username": "", "password": "x"}],
    )
    def test_invalid_auth_raises(self, client, fake_api, auth: Any) -> None:
        with pytest.raises(InvalidConfig, match="username and password required"):
            requires_code(auth, client=client)
        assert fake_api.requests == []
