"""reCAPTCHA verification gate.

Optional pre-check for the POST endpoint. When ``recaptcha.enabled`` is
false no verifier is built and the endpoint skips the token entirely.
"""

from __future__ import annotations

from enum import StrEnum

import httpx
import structlog

log = structlog.get_logger()


class VerificationOutcome(StrEnum):
    VALID = "valid"
    INVALID = "invalid"
    SERVICE_ERROR = "service_error"


class RecaptchaVerifier:
    """Checks tokens against Google's siteverify endpoint."""

    def __init__(self, client: httpx.AsyncClient, secret_key: str, verify_url: str) -> None:
        self._client = client
        self._secret_key = secret_key
        self._verify_url = verify_url

    async def verify(self, token: str, remote_ip: str | None = None) -> VerificationOutcome:
        params = {"secret": self._secret_key, "response": token}
        if remote_ip:
            params["remoteip"] = remote_ip

        try:
            response = await self._client.post(self._verify_url, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("recaptcha_service_error", error=str(exc))
            return VerificationOutcome.SERVICE_ERROR

        if not isinstance(data, dict) or not data.get("success"):
            log.info(
                "recaptcha_rejected",
                error_codes=data.get("error-codes") if isinstance(data, dict) else None,
            )
            return VerificationOutcome.INVALID

        return VerificationOutcome.VALID
