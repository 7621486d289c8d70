"""File-backed storage for users, transcripts and dictionary terms."""

import json
import logging
import os
import threading
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional, List

from ..errors import DuplicateEmailError, PersistenceError
from ..models.transcription import TranscriptRecord, DictionaryTerm
from ..models.user import User


logger = logging.getLogger(__name__)


class RecordStore:
    """Stores accounts and per-user data as JSON files under a data directory.

    Layout::

        <data_dir>/users.json
        <data_dir>/users/<user_id>/transcriptions.json
        <data_dir>/users/<user_id>/dictionary.json
    """

    def __init__(self, data_dir: str = "./data"):
        """Initialize record store with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.users_dir = self.data_dir / "users"
        self.users_file = self.data_dir / "users.json"
        self.lock = threading.RLock()

        self._ensure_directories()

        logger.info(f"RecordStore initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.users_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def _user_dir(self, user_id: int) -> Path:
        path = self.users_dir / str(user_id)
        path.mkdir(exist_ok=True)
        return path

    def _read(self, path: Path) -> List[Dict[str, Any]]:
        if not path.exists():
            return []
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            raise PersistenceError(f"Could not read {path.name}") from e

    def _write(self, path: Path, rows: List[Dict[str, Any]]) -> None:
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(rows, f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            raise PersistenceError(f"Could not write {path.name}") from e

    @staticmethod
    def _next_id(rows: List[Dict[str, Any]]) -> int:
        return max((row["id"] for row in rows), default=0) + 1

    # Users

    def create_user(self, email: str, password_hash: str, name: Optional[str] = None) -> User:
        """Create a new account.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        with self.lock:
            rows = self._read(self.users_file)
            if any(row["email"] == email for row in rows):
                raise DuplicateEmailError()

            user = User(id=self._next_id(rows), email=email,
                        password_hash=password_hash, name=name)
            rows.append(user.to_dict())
            self._write(self.users_file, rows)

        self._user_dir(user.id)
        logger.info(f"Created user {user.id}")
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self.lock:
            for row in self._read(self.users_file):
                if row["email"] == email:
                    return User.from_dict(row)
        return None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self.lock:
            for row in self._read(self.users_file):
                if row["id"] == user_id:
                    return User.from_dict(row)
        return None

    # Transcripts

    def create_record(self, user_id: int, content: str, duration_seconds: int) -> TranscriptRecord:
        """Persist a finished transcript.

        Args:
            user_id: Owning user
            content: Transcript text
            duration_seconds: Approximate audio duration

        Returns:
            The stored TranscriptRecord
        """
        path = self._user_dir(user_id) / "transcriptions.json"
        with self.lock:
            rows = self._read(path)
            record = TranscriptRecord(
                id=self._next_id(rows),
                user_id=user_id,
                content=content,
                duration_seconds=duration_seconds,
                created_at=datetime.now(),
            )
            rows.append(record.to_dict())
            self._write(path, rows)

        logger.info(f"Saved transcript {record.id} for user {user_id} "
                    f"({len(content)} chars, ~{duration_seconds}s)")
        return record

    def list_records(self, user_id: int, limit: int = 50) -> List[TranscriptRecord]:
        """List a user's transcripts, newest first."""
        path = self.users_dir / str(user_id) / "transcriptions.json"
        with self.lock:
            records = [TranscriptRecord.from_dict(row) for row in self._read(path)]
        records.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return records[:limit]

    def delete_record(self, user_id: int, record_id: int) -> bool:
        """Delete one of a user's transcripts.

        Returns:
            True if a record was removed
        """
        path = self.users_dir / str(user_id) / "transcriptions.json"
        with self.lock:
            rows = self._read(path)
            remaining = [row for row in rows if row["id"] != record_id]
            if len(remaining) == len(rows):
                return False
            self._write(path, remaining)

        logger.info(f"Deleted transcript {record_id} for user {user_id}")
        return True

    # Dictionary

    def list_terms(self, user_id: int) -> List[DictionaryTerm]:
        """List a user's dictionary ordered by word."""
        path = self.users_dir / str(user_id) / "dictionary.json"
        with self.lock:
            terms = [DictionaryTerm.from_dict(row) for row in self._read(path)]
        terms.sort(key=lambda t: t.word)
        return terms

    def add_term(self, user_id: int, word: str, pronunciation: Optional[str] = None) -> DictionaryTerm:
        """Add a word, or update its pronunciation if the user already has it."""
        path = self._user_dir(user_id) / "dictionary.json"
        with self.lock:
            rows = self._read(path)
            for row in rows:
                if row["word"] == word:
                    row["pronunciation"] = pronunciation or None
                    self._write(path, rows)
                    logger.debug(f"Updated dictionary word {row['id']} for user {user_id}")
                    return DictionaryTerm.from_dict(row)

            term = DictionaryTerm(id=self._next_id(rows), user_id=user_id,
                                  word=word, pronunciation=pronunciation or None)
            rows.append(term.to_dict())
            self._write(path, rows)

        logger.debug(f"Added dictionary word {term.id} for user {user_id}")
        return term

    def delete_term(self, user_id: int, term_id: int) -> bool:
        path = self.users_dir / str(user_id) / "dictionary.json"
        with self.lock:
            rows = self._read(path)
            remaining = [row for row in rows if row["id"] != term_id]
            if len(remaining) == len(rows):
                return False
            self._write(path, remaining)
        return True

