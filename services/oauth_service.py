import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.config import (
    APP_URL, GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET
)
from database import utcnow
from models.user_model import User, Account
from routes import API_AUTH_PREFIX

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    """Raised when a provider sign-in cannot complete. `code` is the /auth/error query value."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


@dataclass
class OAuthProvider:
    name: str
    client_id: str
    client_secret: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scope: str


@dataclass
class OAuthProfile:
    provider: str
    account_id: str
    email: str
    name: str | None = None
    image: str | None = None
    access_token: str | None = None


PROVIDERS = {
    "google": OAuthProvider(
        name="google",
        client_id=GOOGLE_CLIENT_ID,
        client_secret=GOOGLE_CLIENT_SECRET,
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        userinfo_url="https://openidconnect.googleapis.com/v1/userinfo",
        scope="openid email profile",
    ),
    "github": OAuthProvider(
        name="github",
        client_id=GITHUB_CLIENT_ID,
        client_secret=GITHUB_CLIENT_SECRET,
        authorize_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        userinfo_url="https://api.github.com/user",
        scope="read:user user:email",
    ),
}


def get_provider(name: str) -> OAuthProvider:
    provider = PROVIDERS.get(name)
    if provider is None or not provider.client_id:
        raise OAuthError("OAuthSignin", f"Unknown or unconfigured provider: {name}")
    return provider


def redirect_uri(provider: OAuthProvider) -> str:
    return f"{APP_URL}{API_AUTH_PREFIX}/callback/{provider.name}"


def authorization_url(provider: OAuthProvider, state: str) -> str:
    params = {
        "client_id": provider.client_id,
        "redirect_uri": redirect_uri(provider),
        "response_type": "code",
        "scope": provider.scope,
        "state": state,
    }
    return f"{provider.authorize_url}?{urlencode(params)}"


class OAuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_profile(self, provider: OAuthProvider, code: str) -> OAuthProfile:
        """Exchange the authorization code and load the provider's user profile."""
        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                token_response = await client.post(
                    provider.token_url,
                    data={
                        "client_id": provider.client_id,
                        "client_secret": provider.client_secret,
                        "code": code,
                        "grant_type": "authorization_code",
                        "redirect_uri": redirect_uri(provider),
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise OAuthError("OAuthCallbackError", "Provider returned no access token")

                headers = {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
                profile_response = await client.get(provider.userinfo_url, headers=headers)
                profile_response.raise_for_status()
                data = profile_response.json()

                if provider.name == "github":
                    email = data.get("email")
                    if not email:
                        emails_response = await client.get(f"{provider.userinfo_url}/emails", headers=headers)
                        emails_response.raise_for_status()
                        email = next(
                            (item["email"] for item in emails_response.json() if item.get("primary")), None
                        )
                    profile = OAuthProfile(
                        provider="github",
                        account_id=str(data["id"]),
                        email=email,
                        name=data.get("name") or data.get("login"),
                        image=data.get("avatar_url"),
                        access_token=access_token,
                    )
                else:
                    profile = OAuthProfile(
                        provider=provider.name,
                        account_id=str(data["sub"]),
                        email=data.get("email"),
                        name=data.get("name"),
                        image=data.get("picture"),
                        access_token=access_token,
                    )
            except httpx.HTTPError as e:
                logger.error("OAuth exchange with %s failed: %s", provider.name, e)
                raise OAuthError("OAuthCallbackError", str(e)) from e

        if not profile.email:
            raise OAuthError("OAuthCallbackError", "Provider did not return an email address")
        return profile

    async def sign_in(self, profile: OAuthProfile) -> User:
        """Resolve the user for a provider profile, creating and linking on first sign-in."""
        account = await self.db.scalar(
            select(Account).where(
                Account.provider == profile.provider,
                Account.provider_account_id == profile.account_id,
            )
        )
        if account:
            account.access_token = profile.access_token
            await self.db.commit()
            return await self.db.get(User, account.user_id)

        existing_user = await self.db.scalar(select(User).where(User.email == profile.email))
        if existing_user:
            logger.warning("OAuth %s sign-in for %s blocked: email owned by another account",
                           profile.provider, profile.email)
            raise OAuthError("OAuthAccountNotLinked")

        user = User(name=profile.name, email=profile.email, image=profile.image)
        self.db.add(user)
        await self.db.flush()
        self.db.add(Account(
            user_id=user.id,
            type="oauth",
            provider=profile.provider,
            provider_account_id=profile.account_id,
            access_token=profile.access_token,
        ))
        # linking a provider account proves ownership of the email
        user.email_verified = utcnow()
        await self.db.commit()
        return user
