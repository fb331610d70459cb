from __future__ import annotations
from dataclasses import dataclass, field

@dataclass
class User:
    user_id: str
    username: str
    role: str
    outlet_id: str = ""
    outlet_name: str = ""
    outlet_access: list[str] = field(default_factory=list)
