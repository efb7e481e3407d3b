# tutor_orchestrator/demo/seed_demo_data.py

from datetime import datetime, timedelta
from typing import List

from tutor_orchestrator.storage.db import DEFAULT_DB_PATH
from tutor_orchestrator.storage.models import (
    ConversationSummary,
    ConversationTurn,
    Language,
    Role,
    UserRecord,
    UserTier,
)
from tutor_orchestrator.storage.repository import (
    initialize_schema,
    insert_language,
    insert_message,
    insert_summary,
    insert_user,
)

LANGUAGES = [
    Language(code="en", name="English"),
    Language(code="ja", name="Japanese"),
    Language(code="es", name="Spanish"),
    Language(code="ko", name="Korean"),
]

USERS = [
    UserRecord(user_id="demo-free", tier=UserTier.FREE, app_language_code="en"),
    UserRecord(user_id="demo-pro", tier=UserTier.PRO, app_language_code="en"),
]


def seed_demo_data(db_path: str = DEFAULT_DB_PATH) -> List[UserRecord]:
    """Create the schema and insert demo languages, users and some history.

    Returns:
        The inserted users
    """
    initialize_schema(db_path)

    for language in LANGUAGES:
        insert_language(language, db_path)

    now = datetime.now()
    for user in USERS:
        insert_user(user, db_path)

    insert_summary(
        "demo-free", "ja",
        ConversationSummary(
            summary_text="Learner practiced basic greetings and self-introductions.",
            created_at=now - timedelta(days=1)
        ),
        db_path
    )
    turns = [
        ConversationTurn(Role.USER, "How do I say 'good morning'?", now - timedelta(minutes=2)),
        ConversationTurn(Role.ASSISTANT, "おはようございます (ohayou gozaimasu).", now - timedelta(minutes=1)),
    ]
    for turn in turns:
        insert_message("demo-free", "ja", turn, db_path)

    return list(USERS)


if __name__ == "__main__":
    seed_demo_data()
    print("Demo tutor data inserted")
