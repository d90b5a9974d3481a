"""FakeSignInTokenIssuer: deterministic sign-in tokens for tests and local development."""

from app.core.exceptions import IdentityProviderError


class FakeSignInTokenIssuer:
    """Records every issue() call and returns ``fake-token-{uid}-{n}``."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.issued: list[str] = []

    async def issue(self, uid: str) -> str:
        if self.fail:
            raise IdentityProviderError("Sign-in is temporarily unavailable.", reason="identity-provider-error")
        self.issued.append(uid)
        return f"fake-token-{uid}-{len(self.issued)}"
