"""Skygear SDK client.

Domain operations (login, signup, sessions, identities, OAuth and MFA) are
expressed as calls through the authenticated request pipeline. The client
owns its credential state: the access token and the current
authentication attempt.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Literal, Self

from .core.envelope import result_mapper
from .core.headers import HeaderPreparer
from .core.login_ids import extract_single_key_value, flatten_login_ids
from .core.oauth import (
    authorization_url_path,
    provider_path,
    resolve_callback_url,
)
from .core.pipeline import RequestPipeline
from .core.session import (
    AUTHN_SESSION_TOKEN_FIELD,
    AuthenticationAttempt,
    AuthenticationState,
)
from .core.transport import TransportAdapter, create_async_http_client
from .errors import SkygearError
from .models import (
    ActivateOOBResult,
    ActivateTOTPResult,
    AuthenticationSession,
    Authenticator,
    AuthResponse,
    CreateNewOOBResult,
    CreateNewTOTPResult,
    Identity,
    OIDCConfiguration,
    PKCEChallenge,
    PresignUploadFormResponse,
    PresignUploadResponse,
    Session,
)
from .pkce import create_pkce_challenge
from .telemetry import configure_telemetry, get_logger, traced_async

if TYPE_CHECKING:
    from .config import ClientConfig
    from .types import (
        ExtraSessionInfoFunction,
        HTTPMethod,
        HTTPTransport,
        JSONObject,
        RefreshTokenFunction,
        ResultMapper,
        T,
    )

LoginIDInput = Mapping[str, str]


def _compact(payload: JSONObject) -> JSONObject:
    """Drop unset optional fields from a payload."""
    return {k: v for k, v in payload.items() if v is not None}


@result_mapper
def decode_auth_result(result: Any) -> AuthResponse | AuthenticationSession:
    """Decode a full auth response or a pending second-factor session."""
    if not result.get("access_token") and result.get(AUTHN_SESSION_TOKEN_FIELD):
        return AuthenticationSession.model_validate(result)
    return AuthResponse.model_validate(result)


@result_mapper
def _decode_sessions(result: Any) -> list[Session]:
    return [Session.model_validate(s) for s in result["sessions"]]


@result_mapper
def _decode_session(result: Any) -> Session:
    return Session.model_validate(result["session"])


@result_mapper
def _decode_identities(result: Any) -> list[Identity]:
    return [Identity.model_validate(i) for i in result["identities"]]


@result_mapper
def _decode_authenticators(result: Any) -> list[Authenticator]:
    return [Authenticator.model_validate(a) for a in result["authenticators"]]


@result_mapper
def _decode_recovery_codes(result: Any) -> list[str]:
    return [str(code) for code in result["recovery_codes"]]


@result_mapper
def _decode_access_token(result: Any) -> str:
    return str(result["access_token"])


@result_mapper
def _decode_url(result: Any) -> str:
    if not isinstance(result, str):
        raise TypeError("expected a URL string")
    return result


def _model(model: type[T]) -> ResultMapper[T]:
    return result_mapper(model.model_validate)  # type: ignore[attr-defined]


class SkygearClient:
    """Asynchronous client for the Skygear identity service.

    Authentication entry points return either an ``AuthResponse`` (the
    access token is stored on the client) or an ``AuthenticationSession``
    when a second factor is still required. MFA steps send the held
    authentication-session token back automatically.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_client: HTTPTransport | None = None,
        refresh_token_function: RefreshTokenFunction | None = None,
        extra_session_info_function: ExtraSessionInfoFunction | None = None,
    ) -> None:
        """Initialize client.

        Args:
            config: SDK configuration. Its telemetry settings are applied
                process-wide.
            http_client: HTTP implementation. An ``httpx.AsyncClient`` is
                created and owned by the client when omitted.
            refresh_token_function: Async callable returning True after it
                stored a fresh access token on this client.
            extra_session_info_function: Async callable returning extra
                session info sent with every request, or None.
        """
        configure_telemetry(config.telemetry)
        self.config = config
        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else create_async_http_client(config)
        self.access_token: str | None = None
        self._attempt = AuthenticationAttempt()
        self._logger = get_logger()

        self._headers = HeaderPreparer(
            config.api_key,
            lambda: self.access_token,
            user_agent=config.user_agent,
            extra_session_info=extra_session_info_function,
        )
        self._pipeline = RequestPipeline(
            config.endpoint,
            self._headers,
            TransportAdapter(self._http),
            refresh_token_function=refresh_token_function,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http:
            await self._http.aclose()  # type: ignore[union-attr]

    # Credential state

    @property
    def refresh_token_function(self) -> RefreshTokenFunction | None:
        return self._pipeline.refresh_token_function

    @refresh_token_function.setter
    def refresh_token_function(self, fn: RefreshTokenFunction | None) -> None:
        self._pipeline.refresh_token_function = fn

    @property
    def authn_session_token(self) -> str | None:
        """Authentication-session token of the pending attempt, if any."""
        return self._attempt.token

    @authn_session_token.setter
    def authn_session_token(self, token: str | None) -> None:
        self._attempt.token = token

    @property
    def authentication_state(self) -> AuthenticationState:
        return self._attempt.state

    def abandon_authentication(self) -> None:
        """Discard the pending authentication attempt."""
        self._attempt.reset()

    def set_endpoint(
        self,
        endpoint: str,
        auth_endpoint: str | None = None,
        asset_endpoint: str | None = None,
    ) -> None:
        """Point the client at another app endpoint."""
        self.config = self.config.with_endpoint(endpoint, auth_endpoint, asset_endpoint)
        self._pipeline.endpoint = self.config.endpoint

    # Request helpers

    async def request(
        self,
        method: HTTPMethod,
        path: str,
        *,
        json: JSONObject | None = None,
        query: Sequence[tuple[str, str]] | None = None,
        auto_refresh_token: bool | None = None,
    ) -> Any:
        """Perform a raw enveloped API call and return its result."""
        return await self._pipeline.request(
            method,
            path,
            json=json,
            query=query,
            auto_refresh_token=auto_refresh_token,
        )

    async def _call(
        self,
        path: str,
        payload: JSONObject | None = None,
        *,
        method: HTTPMethod = "POST",
        mapper: ResultMapper[T] | None = None,
        query: Sequence[tuple[str, str]] | None = None,
        auto_refresh_token: bool | None = None,
        begin: bool = False,
        threaded: bool = False,
        track: bool = False,
    ) -> Any:
        """Send one call, tracking the authentication attempt.

        Args:
            begin: The call starts a new authentication attempt.
            threaded: The held authentication-session token is merged into
                the payload.
            track: The call is an authentication step whose outcome always
                advances the attempt. Other threaded calls advance it only
                while a session token is held.
        """
        if begin:
            self._attempt.reset()
        if threaded and payload is not None:
            payload = self._attempt.thread(payload)
        tracked = begin or track or (threaded and self._attempt.token is not None)

        try:
            result = await self._pipeline.request(
                method,
                path,
                json=payload,
                query=query,
                auto_refresh_token=auto_refresh_token,
            )
            value = mapper(result) if mapper is not None else result
        except SkygearError as e:
            if tracked:
                self._attempt.on_error(e)
            raise

        if tracked:
            self._attempt.on_result(result)
        return value

    async def _authenticate(
        self,
        path: str,
        payload: JSONObject,
        *,
        begin: bool = False,
        threaded: bool = False,
        track: bool = True,
    ) -> AuthResponse | AuthenticationSession:
        response = await self._call(
            path,
            payload,
            mapper=decode_auth_result,
            begin=begin,
            threaded=threaded,
            track=track,
        )
        if isinstance(response, AuthResponse) and response.access_token:
            self.access_token = response.access_token
            self._logger.info("Authenticated", user_id=response.user.id)
        return response

    async def _auth_response(self, path: str, payload: JSONObject) -> AuthResponse:
        response = await self._authenticate(path, payload, track=False)
        if not isinstance(response, AuthResponse):
            raise SkygearError("failed to decode response")
        return response

    # Password authentication

    @traced_async()
    async def signup(
        self,
        login_ids: LoginIDInput | Sequence[LoginIDInput],
        password: str,
        *,
        metadata: JSONObject | None = None,
    ) -> AuthResponse | AuthenticationSession:
        """Create a user with one or more login IDs and a password."""
        payload = _compact({
            "password": password,
            "login_ids": [
                lid.model_dump() for lid in flatten_login_ids(login_ids)
            ],
            "metadata": metadata,
        })
        return await self._authenticate("/_auth/signup", payload, begin=True)

    @traced_async()
    async def login(
        self,
        login_id: str,
        password: str,
        *,
        login_id_key: str | None = None,
    ) -> AuthResponse | AuthenticationSession:
        """Log in with a login ID and password."""
        payload = _compact({
            "password": password,
            "login_id": login_id,
            "login_id_key": login_id_key,
        })
        return await self._authenticate("/_auth/login", payload, begin=True)

    @traced_async()
    async def logout(self) -> None:
        """Log out and forget the access token."""
        await self._call("/_auth/logout", {})
        self.access_token = None
        self._attempt.reset()

    @traced_async()
    async def refresh(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token.

        The returned token is not stored; the refresh capability decides
        what to do with it.
        """
        return await self._call(
            "/_auth/refresh",
            {"refresh_token": refresh_token},
            mapper=_decode_access_token,
            auto_refresh_token=False,
        )

    @traced_async()
    async def me(self) -> AuthResponse:
        return await self._auth_response("/_auth/me", {})

    @traced_async()
    async def change_password(self, new_password: str, old_password: str) -> AuthResponse:
        payload = {"password": new_password, "old_password": old_password}
        return await self._auth_response("/_auth/change_password", payload)

    @traced_async()
    async def update_metadata(self, metadata: JSONObject) -> AuthResponse:
        return await self._auth_response("/_auth/update_metadata", {"metadata": metadata})

    @traced_async()
    async def request_forgot_password_email(self, email: str) -> None:
        await self._call("/_auth/forgot_password", {"email": email})

    @traced_async()
    async def reset_password(
        self,
        *,
        user_id: str,
        code: str,
        expire_at: int,
        new_password: str,
    ) -> None:
        payload = {
            "user_id": user_id,
            "code": code,
            "expire_at": expire_at,
            "new_password": new_password,
        }
        await self._call("/_auth/forgot_password/reset_password", payload)

    @traced_async()
    async def request_email_verification(self, email: str) -> None:
        payload = {"login_id_type": "email", "login_id": email}
        await self._call("/_auth/verify_request", payload)

    @traced_async()
    async def request_phone_verification(self, phone: str) -> None:
        payload = {"login_id_type": "phone", "login_id": phone}
        await self._call("/_auth/verify_request", payload)

    @traced_async()
    async def verify_with_code(self, code: str) -> None:
        await self._call("/_auth/verify_code", {"code": code})

    # SSO

    @traced_async()
    async def login_with_custom_token(
        self,
        token: str,
        *,
        on_user_duplicate: str | None = None,
    ) -> AuthResponse | AuthenticationSession:
        payload = _compact({"token": token, "on_user_duplicate": on_user_duplicate})
        return await self._authenticate(
            "/_auth/sso/custom_token/login", payload, begin=True
        )

    @traced_async()
    async def oauth_authorization_url(
        self,
        provider_id: str,
        *,
        action: Literal["login", "link"] = "login",
        callback_url: str | None = None,
        ux_mode: str = "web_redirect",
        on_user_duplicate: str | None = None,
        code_challenge: str | None = None,
    ) -> str:
        """Ask the service for the provider's authorization URL.

        Args:
            provider_id: OAuth provider ID.
            action: ``login`` or ``link``.
            callback_url: Redirect target; defaults to
                ``config.callback_url``.
            ux_mode: How the authorization UI is presented.
            on_user_duplicate: Policy when the provider user already exists.
            code_challenge: PKCE S256 challenge.

        Raises:
            InvalidConfigError: If no callback URL can be resolved.
            ValidationError: If ``action`` is unknown.
        """
        path = authorization_url_path(provider_id, action)
        payload = _compact({
            "callback_url": resolve_callback_url(callback_url, self.config.callback_url),
            "ux_mode": ux_mode,
            "on_user_duplicate": on_user_duplicate,
            "code_challenge": code_challenge,
        })
        return await self._call(path, payload, mapper=_decode_url)

    @traced_async()
    async def oauth_authorization_url_with_pkce(
        self,
        provider_id: str,
        *,
        action: Literal["login", "link"] = "login",
        callback_url: str | None = None,
        ux_mode: str = "web_redirect",
        on_user_duplicate: str | None = None,
    ) -> tuple[str, PKCEChallenge]:
        """Request an authorization URL bound to a fresh PKCE pair.

        Keep the returned ``code_verifier`` and pass it to
        ``get_oauth_result`` after the provider redirects back.
        """
        pkce = create_pkce_challenge()
        url = await self.oauth_authorization_url(
            provider_id,
            action=action,
            callback_url=callback_url,
            ux_mode=ux_mode,
            on_user_duplicate=on_user_duplicate,
            code_challenge=pkce.code_challenge,
        )
        return url, pkce

    @traced_async()
    async def oauth_handler(
        self,
        provider_id: str,
        *,
        code: str,
        scope: str,
        state: str,
    ) -> str:
        return await self._call(
            provider_path(provider_id, "auth_handler"),
            None,
            method="GET",
            query=[("code", code), ("scope", scope), ("state", state)],
        )

    @traced_async()
    async def get_oauth_result(
        self,
        *,
        authorization_code: str,
        code_verifier: str,
    ) -> AuthResponse | AuthenticationSession:
        payload = {
            "authorization_code": authorization_code,
            "code_verifier": code_verifier,
        }
        return await self._authenticate("/_auth/sso/auth_result", payload, begin=True)

    @traced_async()
    async def delete_oauth_provider(self, provider_id: str) -> None:
        await self._call(provider_path(provider_id, "unlink"), {})

    @traced_async()
    async def login_oauth_provider_with_access_token(
        self,
        provider_id: str,
        access_token: str,
        *,
        on_user_duplicate: str | None = None,
    ) -> AuthResponse | AuthenticationSession:
        payload = _compact({
            "access_token": access_token,
            "on_user_duplicate": on_user_duplicate,
        })
        return await self._authenticate(
            provider_path(provider_id, "login"), payload, begin=True
        )

    @traced_async()
    async def link_oauth_provider_with_access_token(
        self,
        provider_id: str,
        access_token: str,
    ) -> AuthResponse:
        return await self._auth_response(
            provider_path(provider_id, "link"), {"access_token": access_token}
        )

    # Sessions and identities

    @traced_async()
    async def list_sessions(self) -> list[Session]:
        return await self._call("/_auth/session/list", {}, mapper=_decode_sessions)

    @traced_async()
    async def get_session(self, session_id: str) -> Session:
        return await self._call(
            "/_auth/session/get", {"session_id": session_id}, mapper=_decode_session
        )

    @traced_async()
    async def revoke_session(self, session_id: str) -> None:
        await self._call("/_auth/session/revoke", {"session_id": session_id})

    @traced_async()
    async def revoke_other_sessions(self) -> None:
        await self._call("/_auth/session/revoke_all", {})

    @traced_async()
    async def list_identities(self) -> list[Identity]:
        return await self._call("/_auth/identity/list", {}, mapper=_decode_identities)

    # Login IDs

    @traced_async()
    async def add_login_id(self, *login_ids: LoginIDInput) -> None:
        """Add login IDs, each given as a one-entry mapping.

        Raises:
            ValidationError: If any mapping does not have exactly one key.
        """
        mapped = [
            extract_single_key_value(lid, "must provide exactly one login ID")
            for lid in login_ids
        ]
        await self._call(
            "/_auth/login_id/add",
            {"login_ids": [lid.model_dump() for lid in mapped]},
        )

    @traced_async()
    async def remove_login_id(self, login_id: LoginIDInput) -> None:
        lid = extract_single_key_value(login_id, "must provide exactly one login ID")
        await self._call("/_auth/login_id/remove", lid.model_dump())

    @traced_async()
    async def update_login_id(
        self,
        old_login_id: LoginIDInput,
        new_login_id: LoginIDInput,
    ) -> AuthResponse:
        old = extract_single_key_value(old_login_id, "must provide exactly one old login ID")
        new = extract_single_key_value(new_login_id, "must provide exactly one new login ID")
        payload = {
            "old_login_id": old.model_dump(),
            "new_login_id": new.model_dump(),
        }
        return await self._auth_response("/_auth/login_id/update", payload)

    # MFA: recovery codes

    @traced_async()
    async def list_recovery_code(self) -> list[str]:
        return await self._call(
            "/_auth/mfa/recovery_code/list",
            {},
            mapper=_decode_recovery_codes,
            threaded=True,
        )

    @traced_async()
    async def regenerate_recovery_code(self) -> list[str]:
        return await self._call(
            "/_auth/mfa/recovery_code/regenerate",
            {},
            mapper=_decode_recovery_codes,
            threaded=True,
        )

    @traced_async()
    async def authenticate_with_recovery_code(
        self, code: str
    ) -> AuthResponse | AuthenticationSession:
        return await self._authenticate(
            "/_auth/mfa/recovery_code/authenticate", {"code": code}, threaded=True
        )

    # MFA: authenticators

    @traced_async()
    async def get_authenticators(self) -> list[Authenticator]:
        return await self._call(
            "/_auth/mfa/authenticator/list",
            {},
            mapper=_decode_authenticators,
            threaded=True,
        )

    @traced_async()
    async def delete_authenticator(self, authenticator_id: str) -> None:
        await self._call(
            "/_auth/mfa/authenticator/delete",
            {"authenticator_id": authenticator_id},
            threaded=True,
        )

    @traced_async()
    async def create_new_totp(
        self,
        display_name: str,
        *,
        issuer: str | None = None,
        account_name: str | None = None,
    ) -> CreateNewTOTPResult:
        payload = _compact({
            "display_name": display_name,
            "issuer": issuer,
            "account_name": account_name,
        })
        return await self._call(
            "/_auth/mfa/totp/new",
            payload,
            mapper=_model(CreateNewTOTPResult),
            threaded=True,
        )

    @traced_async()
    async def activate_totp(self, otp: str) -> ActivateTOTPResult:
        return await self._call(
            "/_auth/mfa/totp/activate",
            {"otp": otp},
            mapper=_model(ActivateTOTPResult),
            threaded=True,
        )

    @traced_async()
    async def authenticate_with_totp(
        self,
        otp: str,
        *,
        skip_mfa_for_current_device: bool = False,
    ) -> AuthResponse | AuthenticationSession:
        """Complete a pending login with a TOTP code.

        Args:
            otp: Current TOTP code.
            skip_mfa_for_current_device: Ask for an MFA bearer token that
                lets this device skip the second factor next time.
        """
        payload = {
            "otp": otp,
            "request_bearer_token": skip_mfa_for_current_device,
        }
        return await self._authenticate(
            "/_auth/mfa/totp/authenticate", payload, threaded=True
        )

    @traced_async()
    async def create_new_oob(
        self,
        channel: Literal["sms", "email"],
        *,
        phone: str | None = None,
        email: str | None = None,
    ) -> CreateNewOOBResult:
        payload = _compact({"channel": channel, "phone": phone, "email": email})
        return await self._call(
            "/_auth/mfa/oob/new",
            payload,
            mapper=_model(CreateNewOOBResult),
            threaded=True,
        )

    @traced_async()
    async def activate_oob(self, code: str) -> ActivateOOBResult:
        return await self._call(
            "/_auth/mfa/oob/activate",
            {"code": code},
            mapper=_model(ActivateOOBResult),
            threaded=True,
        )

    @traced_async()
    async def trigger_oob(self, authenticator_id: str | None = None) -> None:
        """Send an out-of-band code through the authenticator's channel."""
        await self._call(
            "/_auth/mfa/oob/trigger",
            _compact({"authenticator_id": authenticator_id}),
            threaded=True,
        )

    @traced_async()
    async def authenticate_with_oob(
        self,
        code: str,
        *,
        skip_mfa_for_current_device: bool = False,
    ) -> AuthResponse | AuthenticationSession:
        payload = {
            "code": code,
            "request_bearer_token": skip_mfa_for_current_device,
        }
        return await self._authenticate(
            "/_auth/mfa/oob/authenticate", payload, threaded=True
        )

    @traced_async()
    async def authenticate_with_bearer_token(
        self, bearer_token: str | None = None
    ) -> AuthResponse | AuthenticationSession:
        return await self._authenticate(
            "/_auth/mfa/bearer_token/authenticate",
            _compact({"bearer_token": bearer_token}),
            threaded=True,
        )

    @traced_async()
    async def revoke_all_bearer_token(self) -> None:
        await self._call("/_auth/mfa/bearer_token/revoke_all", {})

    # Assets and discovery

    @traced_async()
    async def presign_upload(self, request: JSONObject) -> PresignUploadResponse:
        return await self._call(
            "/_asset/presign_upload",
            request,
            mapper=_model(PresignUploadResponse),
        )

    @traced_async()
    async def presign_upload_form(self) -> PresignUploadFormResponse:
        return await self._call(
            "/_asset/presign_upload_form",
            {},
            mapper=_model(PresignUploadFormResponse),
        )

    @traced_async()
    async def fetch_oidc_configuration(self) -> OIDCConfiguration:
        """Fetch the auth gear's OpenID Connect discovery document."""
        body = await self._pipeline.fetch_json(
            f"{self.config.auth_endpoint}/.well-known/openid-configuration"
        )
        return _model(OIDCConfiguration)(body)
