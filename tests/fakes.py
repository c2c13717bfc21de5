"""
In-memory stand-in for the parts of supabase-py the gateway touches.

One ``FakeBackend`` holds users, sessions and profile rows. ``FakeClient``
objects bound to it play the public, service-role and throwaway session
clients; every call is recorded as ``(scope, operation)`` so tests can assert
what reached the provider and in which order.
"""

import itertools
import time
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Set, Tuple

from supabase import AuthApiError, PostgrestAPIError


@dataclass
class FakeUser:
    id: str
    email: str
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    email_confirmed_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class FakeSession:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    expires_at: Optional[int] = None


class FakeBackend:
    def __init__(self):
        self.users: Dict[str, FakeUser] = {}
        self.passwords: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.failures: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.emails: List[Dict[str, Any]] = []
        self._ids = itertools.count(1)

    def add_user(self, email: str, password: str, **metadata) -> Tuple[FakeUser, str]:
        user = FakeUser(id=f"user-{next(self._ids)}", email=email, user_metadata=dict(metadata))
        self.users[user.id] = user
        self.passwords[user.id] = password
        self.profiles[user.id] = {"id": user.id, "email_verified": True, **metadata}
        return user, self.issue_token(user.id)

    def issue_token(self, user_id: str) -> str:
        token = f"token-{next(self._ids)}"
        self.tokens[token] = user_id
        return token

    def fail(self, operation: str, exc: Exception) -> None:
        self.failures[operation] = exc

    def delay(self, operation: str, seconds: float) -> None:
        self.delays[operation] = seconds

    def record(self, scope: str, operation: str) -> None:
        self.calls.append((scope, operation))
        if operation in self.delays:
            time.sleep(self.delays[operation])
        if operation in self.failures:
            raise self.failures[operation]

    def operations(self, scope: Optional[str] = None) -> List[str]:
        return [op for s, op in self.calls if scope is None or s == scope]

    def user_by_token(self, jwt: str) -> FakeUser:
        user_id = self.tokens.get(jwt)
        if user_id is None or user_id not in self.users:
            raise AuthApiError("invalid JWT: unable to parse or verify signature", 403, "bad_jwt")
        return self.users[user_id]

    def live_tokens(self, user_id: str) -> Set[str]:
        return {token for token, owner in self.tokens.items() if owner == user_id}


class FakeAdmin:
    def __init__(self, backend: FakeBackend, scope: str):
        self.backend = backend
        self.scope = scope

    def update_user_by_id(self, uid: str, attributes: Dict[str, Any]):
        self.backend.record(self.scope, "admin.update_user_by_id")
        user = self.backend.users.get(uid)
        if user is None:
            raise AuthApiError("User not found", 404, "user_not_found")
        if "password" in attributes:
            self.backend.passwords[uid] = attributes["password"]
        if "user_metadata" in attributes:
            user.user_metadata.update(attributes["user_metadata"])
        return SimpleNamespace(user=user)

    def delete_user(self, id: str, should_soft_delete: bool = False) -> None:
        self.backend.record(self.scope, "admin.delete_user")
        if id not in self.backend.users:
            raise AuthApiError("User not found", 404, "user_not_found")
        del self.backend.users[id]
        self.backend.tokens = {t: u for t, u in self.backend.tokens.items() if u != id}

    def sign_out(self, jwt: str, scope: str = "global") -> None:
        self.backend.record(self.scope, f"admin.sign_out:{scope}")
        user = self.backend.user_by_token(jwt)
        if scope == "global":
            self.backend.tokens = {t: u for t, u in self.backend.tokens.items() if u != user.id}
        else:
            self.backend.tokens.pop(jwt, None)


class FakeAuth:
    def __init__(self, backend: FakeBackend, scope: str):
        self.backend = backend
        self.scope = scope
        self.admin = FakeAdmin(backend, scope)

    def sign_up(self, credentials: Dict[str, Any]):
        self.backend.record(self.scope, "sign_up")
        email = credentials["email"]
        if any(u.email == email for u in self.backend.users.values()):
            raise AuthApiError("User already registered", 422, "user_already_exists")
        options = credentials.get("options", {})
        user = FakeUser(
            id=f"user-{next(self.backend._ids)}",
            email=email,
            user_metadata=dict(options.get("data", {})),
        )
        self.backend.users[user.id] = user
        self.backend.passwords[user.id] = credentials["password"]
        self.backend.emails.append({"type": "signup", "email": email, "redirect_to": options.get("email_redirect_to")})
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        self.backend.record(self.scope, "sign_in_with_password")
        for user in self.backend.users.values():
            if user.email == credentials["email"] and self.backend.passwords[user.id] == credentials["password"]:
                token = self.backend.issue_token(user.id)
                return SimpleNamespace(user=user, session=FakeSession(access_token=token, refresh_token=f"refresh-{token}"))
        raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")

    def sign_out(self, options: Optional[Dict[str, Any]] = None) -> None:
        self.backend.record(self.scope, "sign_out")

    def resend(self, credentials: Dict[str, Any]):
        self.backend.record(self.scope, "resend")
        self.backend.emails.append({
            "type": credentials["type"],
            "email": credentials["email"],
            "redirect_to": credentials.get("options", {}).get("email_redirect_to"),
        })
        return SimpleNamespace(user=None, session=None)

    def reset_password_for_email(self, email: str, options: Optional[Dict[str, Any]] = None) -> None:
        self.backend.record(self.scope, "reset_password_for_email")
        self.backend.emails.append({"type": "recovery", "email": email, "redirect_to": (options or {}).get("redirect_to")})

    def get_user(self, jwt: Optional[str] = None):
        self.backend.record(self.scope, "get_user")
        return SimpleNamespace(user=self.backend.user_by_token(jwt))


class FakeQuery:
    def __init__(self, backend: FakeBackend, scope: str, table: str):
        self.backend = backend
        self.scope = scope
        self.table = table
        self.action: Optional[str] = None
        self.payload: Optional[Dict[str, Any]] = None
        self.filters: Dict[str, Any] = {}

    def insert(self, row: Dict[str, Any]) -> "FakeQuery":
        self.action, self.payload = "insert", row
        return self

    def update(self, fields: Dict[str, Any]) -> "FakeQuery":
        self.action, self.payload = "update", fields
        return self

    def delete(self) -> "FakeQuery":
        self.action = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters[column] = value
        return self

    def execute(self):
        self.backend.record(self.scope, f"{self.table}.{self.action}")
        rows = self.backend.profiles
        if self.action == "insert":
            rows[self.payload["id"]] = dict(self.payload)
            return SimpleNamespace(data=[rows[self.payload["id"]]])
        row_id = self.filters.get("id")
        if self.action == "update":
            if row_id not in rows:
                return SimpleNamespace(data=[])
            rows[row_id].update(self.payload)
            return SimpleNamespace(data=[rows[row_id]])
        removed = rows.pop(row_id, None)
        return SimpleNamespace(data=[removed] if removed else [])


class FakeClient:
    def __init__(self, backend: FakeBackend, scope: str):
        self.backend = backend
        self.scope = scope
        self.auth = FakeAuth(backend, scope)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.backend, self.scope, name)


def postgrest_error(message: str = "permission denied for table user_profiles", code: str = "42501") -> PostgrestAPIError:
    return PostgrestAPIError({"message": message, "code": code, "hint": None, "details": None})


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
