"""
Client for the remote identity service and the report access gate.

The identity service owns credentials; this module only calls it,
interprets the answer, and decides whether the returned role may see
reports. Every outcome of `login` is an `AuthResult` value, including
network faults, so callers can react per category (for instance clear
the password only on `INVALID_CREDENTIALS`).

Credentials are never logged.
"""

import logging
from typing import Any, Dict, Optional

import requests

from models import AuthResult, AuthStatus, Session
from settings import settings

logger = logging.getLogger(__name__)

ALLOWED_ROLES = frozenset({"ROLE_SALES", "ROLE_ADMIN"})

# Assumed when neither the login answer nor the user record names a role.
DEFAULT_ROLE = "ROLE_SALES"


class IdentityServiceError(Exception):
    """The identity service could not answer a token lookup."""

    def __init__(self, status: AuthStatus, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


def is_allowed_role(role: Optional[str]) -> bool:
    return role in ALLOWED_ROLES


def _first_role(data: Optional[Dict[str, Any]]) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    roles = data.get("roles")
    if isinstance(roles, list) and roles:
        return str(roles[0])
    role = data.get("role")
    if role:
        return str(role)
    return None


def extract_role(body: Dict[str, Any], user: Optional[Dict[str, Any]]) -> str:
    """Role from the login answer, then from the user record, else the default."""

    return _first_role(body) or _first_role(user) or DEFAULT_ROLE


class AuthClient:
    """HTTP client for `/api/login` and `/api/user/profile`.

    Example usage:
        client = AuthClient()
        result = client.login("ana@example.com", "secret")
        if result.success:
            session = client.session_for(result, "ana@example.com")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.auth_base_url).rstrip("/")
        self.http = http or requests.Session()
        self.timeout = (
            connect_timeout or settings.auth_connect_timeout,
            read_timeout or settings.auth_read_timeout,
        )

    def login(self, email: str, password: str) -> AuthResult:
        url = f"{self.base_url}/api/login"
        try:
            resp = self.http.post(
                url,
                json={"email": email, "password": password},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.warning("Login call to %s timed out: %s", url, exc)
            return _failure(
                AuthStatus.UNAVAILABLE,
                "Impossible de contacter le serveur. Vérifiez votre connexion.",
            )
        except requests.ConnectionError as exc:
            logger.warning("Login call to %s refused: %s", url, exc)
            return _failure(AuthStatus.UNAVAILABLE, "Serveur non disponible")
        except requests.RequestException as exc:
            logger.warning("Login call to %s failed: %s", url, exc)
            return _failure(
                AuthStatus.UNAVAILABLE,
                "Impossible de contacter le serveur. Vérifiez votre connexion.",
            )

        logger.info("Login call %s -> %s", url, resp.status_code)

        if resp.status_code == 401:
            return _failure(AuthStatus.INVALID_CREDENTIALS, "Email ou mot de passe incorrect")
        if resp.status_code == 404:
            return _failure(
                AuthStatus.ENDPOINT_NOT_FOUND,
                "Endpoint non trouvé - Vérifiez l'API d'authentification",
            )
        if resp.status_code != 200:
            return _failure(
                AuthStatus.SERVER_ERROR, f"Erreur de connexion ({resp.status_code})"
            )

        try:
            body = resp.json()
        except ValueError:
            return _failure(AuthStatus.SERVER_ERROR, "Réponse invalide du serveur")
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            return _failure(AuthStatus.SERVER_ERROR, "Réponse invalide du serveur")

        user = body.get("user")
        if not isinstance(user, dict):
            user = self.fetch_user(token)

        role = extract_role(body, user)
        if not is_allowed_role(role):
            return AuthResult(
                success=False,
                status=AuthStatus.INSUFFICIENT_ROLE,
                message="Droits insuffisants - Accès réservé aux commerciaux",
                role=role,
                user=user,
            )

        return AuthResult(
            success=True,
            status=AuthStatus.OK,
            message="Connexion réussie",
            token=token,
            role=role,
            user=user,
        )

    def fetch_user(self, token: str) -> Optional[Dict[str, Any]]:
        """Profile of the token owner, or None.

        Used when the login answer carries no user. Any lookup failure
        yields None; the login itself has already succeeded.
        """

        try:
            return self._get_profile(token)
        except IdentityServiceError as exc:
            logger.warning("User lookup failed after login: %s", exc.message)
            return None

    def resolve_session(self, token: str) -> Optional[Session]:
        """Session for an already issued token.

        None if the service rejects the token. Raises
        `IdentityServiceError` when the service cannot answer, so an
        outage is not mistaken for a bad token.
        """

        user = self._get_profile(token)
        if user is None:
            return None
        return _build_session(token, extract_role({}, user), user, None)

    def _get_profile(self, token: str) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/api/user/profile"
        try:
            resp = self.http.get(
                url,
                headers={"Accept": "application/json", "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Profile call to %s failed: %s", url, exc)
            raise IdentityServiceError(AuthStatus.UNAVAILABLE, "Serveur non disponible") from exc

        logger.info("Profile call %s -> %s", url, resp.status_code)

        if resp.status_code in (401, 403):
            return None
        if resp.status_code == 404:
            raise IdentityServiceError(
                AuthStatus.ENDPOINT_NOT_FOUND,
                "Endpoint non trouvé - Vérifiez l'API d'authentification",
            )
        if resp.status_code != 200:
            raise IdentityServiceError(
                AuthStatus.SERVER_ERROR, f"Erreur de connexion ({resp.status_code})"
            )

        try:
            user = resp.json()
        except ValueError as exc:
            raise IdentityServiceError(AuthStatus.SERVER_ERROR, "Réponse invalide du serveur") from exc
        # The profile is a single record; anything else is not an identity.
        if not isinstance(user, dict):
            raise IdentityServiceError(AuthStatus.SERVER_ERROR, "Réponse invalide du serveur")
        return user

    @staticmethod
    def session_for(result: AuthResult, email: Optional[str] = None) -> Session:
        """Identity context for a successful login."""

        if not result.success or not result.token:
            raise ValueError("Cannot open a session from a failed login")
        return _build_session(result.token, result.role or DEFAULT_ROLE, result.user, email)


def _build_session(
    token: str, role: str, user: Optional[Dict[str, Any]], email: Optional[str]
) -> Session:
    user = user or {}
    return Session(
        token=token,
        role=role,
        email=user.get("email") or email,
        first_name=user.get("firstName") or user.get("first_name"),
        last_name=user.get("lastName") or user.get("last_name"),
    )


def _failure(status: AuthStatus, message: str) -> AuthResult:
    return AuthResult(success=False, status=status, message=message)
