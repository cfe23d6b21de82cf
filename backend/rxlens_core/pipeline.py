from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from .errors import AuthError, ClientInputError, RxLensError, UpstreamError
from .models import AnalysisResult, PipelineOutcome, PipelineRun, PipelineState
from .orchestrator import DEFAULT_EXTRACTOR, AnalysisExtractor

if TYPE_CHECKING:
    from rxlens_services.identity import Identity

logger = logging.getLogger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class PrescriptionPipeline:
    """Drives one analyze-prescription request from credentials to response.

    Collaborators are injected: ``identity.resolve(token)`` returns an identity
    or ``None``, ``client.analyze_prescription_image(image)`` returns model
    text, and ``store`` provides ``ensure_user`` and ``save_analysis``.
    """

    def __init__(
        self,
        *,
        identity: Any,
        client: Any,
        store: Any,
        extractor: AnalysisExtractor = DEFAULT_EXTRACTOR,
    ) -> None:
        self._identity = identity
        self._client = client
        self._store = store
        self._extractor = extractor

    def resolve_identity(self, authorization: str | None) -> Identity:
        token = bearer_token(authorization)
        if token is None:
            raise AuthError("Missing authorization header", status_code=400)
        identity = self._identity.resolve(token)
        if identity is None:
            raise AuthError("Invalid authorization token")
        return identity

    def authenticate(self, authorization: str | None) -> Identity:
        """Resolve the caller and register them on first sight."""
        identity = self.resolve_identity(authorization)
        self._store.ensure_user(identity.user_id, identity.email)
        return identity

    def handle(self, *, authorization: str | None, image: Any) -> PipelineOutcome:
        run = PipelineRun(request_id=uuid.uuid4().hex)
        try:
            run.advance(PipelineState.AUTHENTICATING)
            identity = self.resolve_identity(authorization)
            run.user_id = identity.user_id

            run.advance(PipelineState.VALIDATING)
            if not isinstance(image, str) or not image.strip():
                raise ClientInputError("No image provided")

            run.advance(PipelineState.ANALYZING)
            analysis = self._analyze(image)

            run.advance(PipelineState.PERSISTING)
            self._store.ensure_user(identity.user_id, identity.email)
            prescription_id = self._store.save_analysis(user_id=identity.user_id, analysis=analysis)
        except RxLensError as exc:
            failed_in = run.state.value
            run.fail(exc.message)
            logger.warning("analyze-prescription %s failed while %s: %s", run.request_id, failed_in, exc.message)
            raise

        run.advance(PipelineState.RESPONDING)
        logger.info("analyze-prescription %s saved prescription %s", run.request_id, prescription_id)
        return PipelineOutcome(analysis=analysis, prescription_id=prescription_id, run=run)

    def _analyze(self, image: str) -> AnalysisResult:
        try:
            text = self._client.analyze_prescription_image(image)
            return self._extractor.extract(text)
        except UpstreamError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while analyzing prescription")
            raise UpstreamError(f"Prescription analysis failed: {exc}") from exc
