"""Two-step login against the GoCardless dashboard API and token caching."""

import enum
import json
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from .client.http import GoCardlessClient
from .client.resources import TemporaryAccessToken, decode_resource
from .errors import ApiError, GoCardlessError
from .localization import localize_text

logger = logging.getLogger(__name__)

API_HOST = "api.gocardless.com"
# Listing creditors created in the far future is an empty, cheap token probe
TOKEN_PROBE_PARAMS = {"created_at[gt]": "2999-12-31T00:00:00Z"}
INVALID_OTP_REASONS = frozenset({
    "two_factor_auth_invalid_otp_totp_code",
    "two_factor_auth_invalid_otp_sms_code",
})


class LoginStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CHALLENGE = "challenge"
    ERROR = "error"


class LoginChallenge(BaseModel):
    """Second-factor prompt to show to the user."""
    title: str
    challenge: str
    label: str


class LoginResult(BaseModel):
    status: LoginStatus
    challenge: Optional[LoginChallenge] = None
    message: Optional[str] = Field(None, description="User-facing error message")


class StoredSession(BaseModel):
    token: Optional[str] = None
    creditor: Optional[str] = None


class TokenStore:
    """In-memory storage of the bearer token and creditor ID."""

    def __init__(self, token: Optional[str] = None, creditor: Optional[str] = None):
        self.token = token
        self.creditor = creditor

    def save(self) -> None:
        """Persist the state; nothing to do for memory storage."""


class FileTokenStore(TokenStore):
    """Token store persisted as a JSON file between CLI runs."""

    def __init__(self, path: Path):
        self.path = Path(path)
        session = StoredSession()
        if self.path.exists():
            try:
                session = StoredSession.model_validate_json(self.path.read_text())
            except ValueError:
                logger.warning(f"Ignoring unreadable session file {self.path}")
        super().__init__(token=session.token, creditor=session.creditor)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = StoredSession(token=self.token, creditor=self.creditor).model_dump()
        self.path.write_text(json.dumps(data))
        self.path.chmod(0o600)


class Authenticator:
    """
    Email/password login with optional second factor.

    Step 1 reuses a cached token if it is still valid, otherwise logs in with
    email and password. If the account has 2FA enabled the result is a
    challenge, answered in step 2 with the one-time code.
    """

    def __init__(self, client: GoCardlessClient, store: TokenStore, language: Optional[str] = None):
        self.client = client
        self.store = store
        self.language = language
        self._email: Optional[str] = None
        self._password: Optional[str] = None
        if store.token and not client.token:
            client.token = store.token

    def _text(self, en: str, de: str) -> str:
        return localize_text(en, de, self.language)

    def initialize_session(self, step: int, credentials: List[str]) -> LoginResult:
        """Perform one step of the login.

        Args:
            step: 1 for email/password, 2 for the second factor.
            credentials: ``[email, password]`` on step 1, ``[code]`` on step 2.

        Returns:
            LoginResult with the outcome.
        """
        if step == 1:
            if self.store.token and self.token_is_valid():
                logger.info("Cached access token is still valid")
                return self._finish(LoginResult(status=LoginStatus.SUCCESS))

            self._email, self._password = credentials[0], credentials[1]
            return self._finish(self.login(self._email, self._password))

        if self._email is None or self._password is None:
            return LoginResult(
                status=LoginStatus.ERROR,
                message=self._text("Please log in with email and password first.",
                                   "Bitte zuerst mit E-Mail und Passwort anmelden."),
            )
        return self._finish(self.login(self._email, self._password, otp_code=credentials[0]))

    def _finish(self, result: LoginResult) -> LoginResult:
        # credentials are only kept while a second-factor challenge is open
        if result.status != LoginStatus.CHALLENGE:
            self._email = None
            self._password = None
        return result

    def token_is_valid(self) -> bool:
        """Check the cached token by requesting an empty list."""
        self.client.token = self.store.token
        try:
            self.client.get("creditors", TOKEN_PROBE_PARAMS)
        except GoCardlessError as e:
            logger.info(f"Cached access token is no longer valid: {e}")
            return False
        return True

    def login(self, email: str, password: str, otp_code: Optional[str] = None) -> LoginResult:
        """Request a long-lived temporary access token."""
        self.client.token = None
        payload = {
            "temporary_access_tokens": {
                "email": email,
                "password": password,
                "otp_code": otp_code,
                # a long-lived token, since it is cached
                "trust_device": True,
            }
        }
        if otp_code is None:
            del payload["temporary_access_tokens"]["otp_code"]

        try:
            response = self.client.post("temporary_access_tokens", payload)
        except ApiError as e:
            return self._login_error(e)

        token = decode_resource("temporary_access_token", response.get("temporary_access_tokens"))
        self._store_token(token)
        return LoginResult(status=LoginStatus.SUCCESS)

    def end_session(self) -> None:
        """No logout; the token stays cached for the next session."""

    def _store_token(self, token: TemporaryAccessToken) -> None:
        self.store.token = token.token
        self.store.creditor = token.links.get("creditor")
        self.store.save()
        self.client.token = token.token
        logger.info(f"Logged in for creditor {self.store.creditor}")

    def _two_factor_challenge(self, text: str) -> LoginResult:
        return LoginResult(
            status=LoginStatus.CHALLENGE,
            challenge=LoginChallenge(
                title=self._text("Two-Factor Authentication", "Zwei-Faktor-Authentifizierung"),
                challenge=text,
                label=self._text("6-digit code", "6-stelliger Code"),
            ),
        )

    def _login_error(self, error: ApiError) -> LoginResult:
        if error.reason == "unauthorized":
            return LoginResult(status=LoginStatus.FAILED)

        if error.reason == "auth_factor_required":
            factor_type = str(error.metadata.get("factor_type", "")).upper()
            number = ""
            if factor_type == "SMS":
                ending = error.metadata.get("phone_number_ending")
                number = self._text(
                    f" (phone number ending {ending})",
                    f" (Telefonnummer endet auf {ending})",
                )
            return self._two_factor_challenge(
                self._text(
                    f"Please enter your {factor_type} code{number}.",
                    f"Bitte gebe deinen {factor_type}-Code ein{number}.",
                )
            )

        if error.reason in INVALID_OTP_REASONS:
            return self._two_factor_challenge(
                self._text("Invalid code. Please try again.", "Ungültiger Code. Bitte versuche es erneut.")
            )

        return LoginResult(
            status=LoginStatus.ERROR,
            message=self._text(
                f"The web server {API_HOST} responded with the error message:\n»{error}«\nPlease try again later.",
                f"Der Webserver {API_HOST} antwortete mit der Fehlermeldung:\n»{error}«\n"
                "Bitte versuchen Sie es später noch einmal.",
            ),
        )
