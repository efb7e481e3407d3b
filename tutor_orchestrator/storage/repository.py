"""
Repository pattern for data access.

Declares the store interfaces the orchestration core consumes and provides
SQLite-backed implementations of them.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Union

from .db import DEFAULT_DB_PATH, get_connection
from .models import (
    ConversationSummary,
    ConversationTurn,
    Language,
    Role,
    UserRecord,
    UserTier,
)


class UserStore(Protocol):
    """Lookup and budget persistence for users."""

    def find_by_id(self, user_id: str) -> Optional[UserRecord]: ...

    def save(self, user: UserRecord) -> None: ...


class LanguageStore(Protocol):
    """Lookup for supported languages."""

    def find_by_code(self, code: str) -> Optional[Language]: ...


class MessageStore(Protocol):
    """Recent raw turns, returned oldest-first."""

    def find_recent(self, user_id: str, language_code: str, limit: int) -> List[ConversationTurn]: ...


class SummaryStore(Protocol):
    """Conversation summaries, returned newest-first."""

    def find_recent(self, user_id: str, language_code: str, limit: int) -> List[ConversationSummary]: ...


def _parse_tier(value: str) -> Union[UserTier, str]:
    """Map a stored tier to UserTier, keeping unknown values for the caller to reject."""
    try:
        return UserTier(value)
    except ValueError:
        return value


def _tier_value(tier: Union[UserTier, str]) -> str:
    return tier.value if isinstance(tier, UserTier) else str(tier)


class SQLiteUserStore:
    """User store backed by the ``users`` table."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT user_id, tier, app_language_code,
                       tokens_used_today, last_token_reset
                FROM users
                WHERE user_id = ?
            """, (user_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return UserRecord(
                user_id=row[0],
                tier=_parse_tier(row[1]),
                app_language_code=row[2],
                tokens_used_today=row[3],
                last_token_reset=datetime.fromisoformat(row[4]) if row[4] else None
            )
        finally:
            conn.close()

    def save(self, user: UserRecord) -> None:
        """Persist the budget fields of an existing user.

        Raises:
            LookupError: If the user row does not exist
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                UPDATE users
                SET tokens_used_today = ?, last_token_reset = ?
                WHERE user_id = ?
            """, (
                user.tokens_used_today,
                user.last_token_reset.isoformat() if user.last_token_reset else None,
                user.user_id
            ))
            if cursor.rowcount == 0:
                raise LookupError(f"User not found: {user.user_id}")
            conn.commit()
        finally:
            conn.close()


class SQLiteLanguageStore:
    """Language store backed by the ``languages`` table."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def find_by_code(self, code: str) -> Optional[Language]:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "SELECT code, name FROM languages WHERE code = ?", (code,)
            )
            row = cursor.fetchone()
            return Language(code=row[0], name=row[1]) if row else None
        finally:
            conn.close()


class SQLiteMessageStore:
    """Recent message store backed by the ``recent_messages`` table."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def find_recent(self, user_id: str, language_code: str, limit: int) -> List[ConversationTurn]:
        """Get the most recent turns for a user and learning language.

        Args:
            user_id: Owner of the messages
            language_code: Learning language code
            limit: Maximum number of turns to return

        Returns:
            Turns ordered by creation time (oldest first)
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT role, content, created_at
                FROM recent_messages
                WHERE user_id = ? AND learning_language_code = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            """, (user_id, language_code, limit))
            turns = [
                ConversationTurn(
                    role=Role(row[0]),
                    content=row[1],
                    created_at=datetime.fromisoformat(row[2])
                )
                for row in cursor.fetchall()
            ]
            turns.reverse()
            return turns
        finally:
            conn.close()


class SQLiteSummaryStore:
    """Summary store backed by the ``conversation_summaries`` table."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def find_recent(self, user_id: str, language_code: str, limit: int) -> List[ConversationSummary]:
        """Get the most recent summaries, newest first."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT summary_text, created_at
                FROM conversation_summaries
                WHERE user_id = ? AND learning_language_code = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            """, (user_id, language_code, limit))
            return [
                ConversationSummary(
                    summary_text=row[0],
                    created_at=datetime.fromisoformat(row[1])
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the store tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS languages (
                code TEXT PRIMARY KEY,
                name TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                tier TEXT NOT NULL DEFAULT 'free',
                app_language_code TEXT NOT NULL,
                tokens_used_today INTEGER DEFAULT 0,
                last_token_reset TEXT
            );
            CREATE TABLE IF NOT EXISTS recent_messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL REFERENCES users(user_id),
                learning_language_code TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS conversation_summaries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL REFERENCES users(user_id),
                learning_language_code TEXT NOT NULL,
                summary_text TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
        """)
        conn.commit()
    finally:
        conn.close()


def insert_language(language: Language, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert or replace a supported language."""
    conn = get_connection(db_path)
    try:
        conn.execute(
            "INSERT OR REPLACE INTO languages (code, name) VALUES (?, ?)",
            (language.code, language.name)
        )
        conn.commit()
    finally:
        conn.close()


def insert_user(user: UserRecord, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a new user row including its budget fields."""
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO users
            (user_id, tier, app_language_code, tokens_used_today, last_token_reset)
            VALUES (?, ?, ?, ?, ?)
        """, (
            user.user_id,
            _tier_value(user.tier),
            user.app_language_code,
            user.tokens_used_today,
            user.last_token_reset.isoformat() if user.last_token_reset else None
        ))
        conn.commit()
    finally:
        conn.close()


def insert_message(
    user_id: str,
    language_code: str,
    turn: ConversationTurn,
    db_path: str = DEFAULT_DB_PATH
) -> None:
    """Append a chat turn to a user's recent history."""
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO recent_messages
            (user_id, learning_language_code, role, content, created_at)
            VALUES (?, ?, ?, ?, ?)
        """, (
            user_id,
            language_code,
            turn.role.value,
            turn.content,
            turn.created_at.isoformat()
        ))
        conn.commit()
    finally:
        conn.close()


def insert_summary(
    user_id: str,
    language_code: str,
    summary: ConversationSummary,
    db_path: str = DEFAULT_DB_PATH
) -> None:
    """Append a conversation summary for a user and learning language."""
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO conversation_summaries
            (user_id, learning_language_code, summary_text, created_at)
            VALUES (?, ?, ?, ?)
        """, (
            user_id,
            language_code,
            summary.summary_text,
            summary.created_at.isoformat()
        ))
        conn.commit()
    finally:
        conn.close()
