from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

from ask_sdk_webservice_support.verifier import RequestVerifier, VerificationException
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15
from cryptography.hazmat.primitives.hashes import SHA256

from covid_skill.models import SkillRequest

logger = logging.getLogger(__name__)

CERT_CHAIN_URL_HEADER = "SignatureCertChainUrl"
SIGNATURE_HEADER = "Signature-256"


class RequestValidator(Protocol):
    async def validate(self, skill_request: SkillRequest, headers: Mapping[str, str], raw_body: str) -> bool:
        ...


class SignatureVerifier(Protocol):
    def verify(self, headers: dict[str, Any], serialized_request_env: str, deserialized_request_env: Any) -> None:
        ...


def parse_timestamp(value: str) -> datetime | None:
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_signature_verifier() -> RequestVerifier:
    return RequestVerifier(
        signature_cert_chain_url_key=CERT_CHAIN_URL_HEADER,
        signature_key=SIGNATURE_HEADER,
        padding=PKCS1v15(),
        hash_algorithm=SHA256(),
    )


class AlexaRequestValidator:
    def __init__(
        self,
        application_id: str | None = None,
        tolerance_sec: int = 150,
        verify_signature: bool = True,
        signature_verifier: SignatureVerifier | None = None,
    ) -> None:
        self.application_id = application_id
        self.tolerance_sec = tolerance_sec
        self.verify_signature = verify_signature
        if verify_signature and signature_verifier is None:
            signature_verifier = build_signature_verifier()
        self.signature_verifier = signature_verifier

    async def validate(self, skill_request: SkillRequest, headers: Mapping[str, str], raw_body: str) -> bool:
        reason = self._rejection_reason(skill_request, datetime.now(timezone.utc))
        if not reason and self.verify_signature and self.signature_verifier is not None:
            reason = await self._signature_rejection(self.signature_verifier, headers, raw_body)
        if reason:
            logger.warning(
                "request_rejected",
                extra={
                    "action": "validate",
                    "reason": reason,
                    "request_id": skill_request.request.request_id,
                },
            )
            return False
        return True

    def _rejection_reason(self, skill_request: SkillRequest, now: datetime) -> str:
        if self.application_id and skill_request.application_id != self.application_id:
            return "application_id_mismatch"

        timestamp = parse_timestamp(skill_request.request.timestamp)
        if timestamp is None:
            return "timestamp_invalid"
        if abs((now - timestamp).total_seconds()) > self.tolerance_sec:
            return "timestamp_out_of_tolerance"
        return ""

    @staticmethod
    async def _signature_rejection(verifier: SignatureVerifier, headers: Mapping[str, str], raw_body: str) -> str:
        # Header lookup in the verifier is case sensitive.
        signed_headers = {
            key: headers[key] for key in (CERT_CHAIN_URL_HEADER, SIGNATURE_HEADER) if key in headers
        }
        try:
            # Certificate download in the verifier is blocking.
            await asyncio.to_thread(verifier.verify, signed_headers, raw_body, None)
        except VerificationException as exc:
            return f"signature_invalid: {exc}"
        return ""
