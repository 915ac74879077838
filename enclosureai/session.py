"""
Session management — remembers each user's last canonical plan so a
follow-up prompt can edit it instead of starting over.

Two stores share the ``get`` / ``put`` interface:

  MemorySessionStore   a dict behind a lock, lost on restart
  DiskSessionStore     one folder per user under sessions/<safe_id>-<digest>/

A session folder contains:
  session.json   — metadata (created, last_modified, revision)
  plan.json      — the last canonical plan, in planner JSON form
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from enclosureai.pipeline.plan import DesignPlan, plan_to_dict, validate

log = logging.getLogger("enclosureAI.session")


class SessionStore(Protocol):
    def get(self, user_id: str) -> DesignPlan | None: ...

    def put(self, user_id: str, plan: DesignPlan) -> None: ...


class MemorySessionStore:
    """In-process store.  The lock is held only for the dict access."""

    def __init__(self) -> None:
        self._plans: dict[str, DesignPlan] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> DesignPlan | None:
        with self._lock:
            return self._plans.get(user_id)

    def put(self, user_id: str, plan: DesignPlan) -> None:
        with self._lock:
            self._plans[user_id] = plan

    def clear(self) -> None:
        with self._lock:
            self._plans.clear()


@dataclass
class Session:
    user_id: str
    path: Path
    created: str                         # ISO 8601
    last_modified: str                   # ISO 8601
    revision: int = 0

    def save(self) -> None:
        """Persist session metadata to session.json."""
        self.last_modified = datetime.now(timezone.utc).isoformat()
        self.path.mkdir(parents=True, exist_ok=True)
        meta = {
            "user_id": self.user_id,
            "created": self.created,
            "last_modified": self.last_modified,
            "revision": self.revision,
        }
        (self.path / "session.json").write_text(
            json.dumps(meta, indent=2), encoding="utf-8")


_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


def _folder_name(user_id: str) -> str:
    """Filesystem-safe folder name for a user id.

    The readable part is lossy ("a/b" and "a_b" both become "a_b"), so a
    short digest of the raw id keeps every user in their own folder.
    """
    name = _UNSAFE.sub("_", user_id).strip(".")[:64] or "_"
    digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:12]
    return f"{name}-{digest}"


class DiskSessionStore:
    """Session folders on disk, one per user."""

    def __init__(self, sessions_dir: Path) -> None:
        self.sessions_dir = Path(sessions_dir)

    def _path(self, user_id: str) -> Path:
        return self.sessions_dir / _folder_name(user_id)

    def load_session(self, user_id: str) -> Session | None:
        """Load session metadata. Returns None if not found or unreadable."""
        meta_path = self._path(user_id) / "session.json"
        if not meta_path.exists():
            return None
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return None
        if not isinstance(meta, dict):
            return None
        now = datetime.now(timezone.utc).isoformat()
        revision = meta.get("revision", 0)
        if not isinstance(revision, int) or isinstance(revision, bool):
            revision = 0
        return Session(
            user_id=meta.get("user_id", user_id),
            path=self._path(user_id),
            created=meta.get("created", now),
            last_modified=meta.get("last_modified", now),
            revision=revision,
        )

    def get(self, user_id: str) -> DesignPlan | None:
        plan_path = self._path(user_id) / "plan.json"
        if not plan_path.exists():
            return None
        try:
            raw = json.loads(plan_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Unreadable plan for %s: %s", user_id, e)
            return None
        # Stored plans were canonical when written; this also upgrades
        # plans saved by an older rule set.
        return validate(raw)

    def put(self, user_id: str, plan: DesignPlan) -> None:
        session = self.load_session(user_id)
        if session is None:
            now = datetime.now(timezone.utc).isoformat()
            session = Session(user_id=user_id, path=self._path(user_id),
                              created=now, last_modified=now)
        session.revision += 1
        session.path.mkdir(parents=True, exist_ok=True)
        (session.path / "plan.json").write_text(
            json.dumps(plan_to_dict(plan), indent=2), encoding="utf-8")
        session.save()

    def list_sessions(self) -> list[dict]:
        """List all sessions, most recently modified first."""
        sessions = []
        if not self.sessions_dir.exists():
            return sessions
        for d in self.sessions_dir.iterdir():
            if not d.is_dir():
                continue
            meta_path = d / "session.json"
            if not meta_path.exists():
                continue
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError):
                continue
            if not isinstance(meta, dict):
                continue
            sessions.append(meta)
        sessions.sort(key=lambda m: m.get("last_modified", ""), reverse=True)
        return sessions
