from __future__ import annotations

import pytest

from rxlens_core import (
    AuthError,
    ClientInputError,
    PersistenceError,
    PipelineRun,
    PipelineState,
    PrescriptionPipeline,
    UpstreamError,
    bearer_token,
)
from rxlens_services.identity import Identity


class FakeIdentity:
    def resolve(self, token: str) -> Identity | None:
        return Identity(user_id=token) if token == "good" else None


class FakeClient:
    def __init__(self, text: str = "condition: Seasonal allergies") -> None:
        self.text = text
        self.images: list[str] = []

    def analyze_prescription_image(self, image: str) -> str:
        self.images.append(image)
        return self.text


class FakeStore:
    def __init__(self, fail_stage: str | None = None) -> None:
        self.fail_stage = fail_stage
        self.users: list[str] = []
        self.saved: list[str] = []

    def ensure_user(self, user_id: str, email: str | None = None) -> None:
        self.users.append(user_id)

    def save_analysis(self, *, user_id, analysis) -> str:
        if self.fail_stage == "analysis":
            raise PersistenceError("Failed to save analysis", stage="analysis", prescription_id="rx_orphan")
        self.saved.append(user_id)
        return "rx_1"


def _pipeline(store: FakeStore | None = None, client: FakeClient | None = None) -> PrescriptionPipeline:
    return PrescriptionPipeline(identity=FakeIdentity(), client=client or FakeClient(), store=store or FakeStore())


def test_bearer_token_parsing():
    assert bearer_token("Bearer abc") == "abc"
    assert bearer_token("bearer   abc  ") == "abc"
    assert bearer_token("Basic abc") is None
    assert bearer_token("Bearer ") is None
    assert bearer_token(None) is None


def test_successful_run_walks_every_state():
    store = FakeStore()
    outcome = _pipeline(store=store).handle(authorization="Bearer good", image="QUJD")

    assert outcome.prescription_id == "rx_1"
    assert outcome.analysis.condition == "Seasonal allergies"
    assert outcome.analysis.needs_workout is True
    assert outcome.run.history == [
        "awaiting_request",
        "authenticating",
        "validating",
        "analyzing",
        "persisting",
        "responding",
    ]
    assert outcome.run.user_id == "good"
    assert store.users == ["good"]
    assert outcome.as_response()["prescriptionId"] == "rx_1"


def test_validation_failure_stops_before_analysis():
    client = FakeClient()
    store = FakeStore()
    with pytest.raises(ClientInputError):
        _pipeline(store=store, client=client).handle(authorization="Bearer good", image=None)
    assert client.images == []
    assert store.saved == []
    assert store.users == []


def test_auth_failures_distinguish_missing_and_invalid():
    with pytest.raises(AuthError) as missing:
        _pipeline().handle(authorization=None, image="QUJD")
    assert missing.value.status_code == 400

    with pytest.raises(AuthError) as invalid:
        _pipeline().handle(authorization="Bearer bad", image="QUJD")
    assert invalid.value.status_code == 401


def test_persistence_failure_carries_orphan_id():
    with pytest.raises(PersistenceError) as excinfo:
        _pipeline(store=FakeStore(fail_stage="analysis")).handle(authorization="Bearer good", image="QUJD")
    assert excinfo.value.stage == "analysis"
    assert excinfo.value.prescription_id == "rx_orphan"


def test_run_cannot_advance_after_terminal_state():
    run = PipelineRun(request_id="req-1")
    run.advance(PipelineState.AUTHENTICATING)
    run.fail("boom")
    assert run.state is PipelineState.FAILED
    assert run.error == "boom"
    with pytest.raises(RuntimeError):
        run.advance(PipelineState.VALIDATING)


def test_user_is_registered_only_once_the_analysis_is_ready():
    class FailingClient(FakeClient):
        def analyze_prescription_image(self, image: str) -> str:
            raise RuntimeError("connection reset")

    store = FakeStore()
    with pytest.raises(UpstreamError):
        _pipeline(store=store, client=FailingClient()).handle(authorization="Bearer good", image="QUJD")
    assert store.users == []
