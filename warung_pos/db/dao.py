from __future__ import annotations

import json
from dataclasses import asdict
from typing import Optional

from warung_pos.db.database import Database
from warung_pos.models.user import User


# =============================================================================
# CREDENTIAL DATA ACCESS OBJECT
# =============================================================================

class CredentialDAO:
    """
    Database access for credentials table (single row, id = 1).
    Columns: id, token, user_json, saved_at
    """

    def __init__(self, db: Database):
        self.db = db

    def save(self, token: str, user: Optional[User]) -> None:
        """Store (or replace) the bearer token and the user it belongs to."""
        user_json = json.dumps(asdict(user) if user else {}, ensure_ascii=False)
        self.db.execute(
            """
            INSERT INTO credentials(id, token, user_json) VALUES(1,?,?)
            ON CONFLICT(id) DO UPDATE SET
                token=excluded.token,
                user_json=excluded.user_json,
                saved_at=datetime('now','localtime');
            """,
            (str(token), user_json),
        )

    def get_token(self) -> Optional[str]:
        """Fetch the stored token, None when logged out."""
        r = self.db.fetchone("SELECT token FROM credentials WHERE id=1;")
        if not r or not r["token"]:
            return None
        return str(r["token"])

    def get_user(self) -> Optional[User]:
        """Fetch the stored user."""
        r = self.db.fetchone("SELECT user_json FROM credentials WHERE id=1;")
        if not r:
            return None
        data = json.loads(r["user_json"] or "{}")
        if not data:
            return None
        return User(
            str(data.get("user_id", "")),
            str(data.get("username", "")),
            str(data.get("role", "")).upper(),
            str(data.get("outlet_id", "")),
            str(data.get("outlet_name", "")),
            list(data.get("outlet_access") or []),
        )

    def clear(self) -> None:
        """Forget the credential (logout or expired session)."""
        self.db.execute("DELETE FROM credentials;")
