"""Shared fixtures: a small chat-log database written through SQLAlchemy."""

import pytest
from sqlalchemy import create_engine, text

BASE_TS = 1_700_000_000

_SCHEMA = [
    """
    CREATE TABLE member (
        id INTEGER PRIMARY KEY,
        platform_id TEXT NOT NULL,
        account_name TEXT,
        group_nickname TEXT
    )
    """,
    """
    CREATE TABLE message (
        id INTEGER PRIMARY KEY,
        sender_id INTEGER NOT NULL REFERENCES member(id),
        ts INTEGER NOT NULL,
        type INTEGER NOT NULL,
        content TEXT
    )
    """,
    """
    CREATE TABLE chat_session (
        id INTEGER PRIMARY KEY,
        start_ts INTEGER NOT NULL,
        end_ts INTEGER NOT NULL,
        message_count INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE message_context (
        message_id INTEGER NOT NULL REFERENCES message(id),
        session_id INTEGER NOT NULL REFERENCES chat_session(id)
    )
    """,
]

MEMBERS = [
    # id, platform_id, account_name, group_nickname
    (1, "wxid_alice", "Alice", "Ali"),
    (2, "wxid_bob", "Bob", None),
    (3, "wxid_carol", None, None),
]

SESSIONS = [
    # id, start_ts, end_ts, messages as (sender_id, offset, type, content)
    (1, BASE_TS, BASE_TS + 600, [
        (1, 0, 1, "Shall we go hiking on Saturday?"),
        (2, 60, 1, "Sure, the weather looks good"),
        (2, 90, 3, "[image]"),
        (3, 120, 1, "Count me in"),
    ]),
    (2, BASE_TS + 86_400, BASE_TS + 86_400 + 300, [
        (1, 0, 10, "Alice recalled a message"),
        (2, 30, 0, "Bob joined the group"),
    ]),
    (3, BASE_TS + 172_800, BASE_TS + 172_800 + 900, [
        (3, 0, 1, "Quarterly budget review is due Friday"),
        (1, 45, 1, "I will send the spreadsheet tonight"),
    ]),
]


def build_chat_db(db_path) -> None:
    engine = create_engine(f"sqlite:///{db_path}")
    message_id = 0
    with engine.begin() as conn:
        for statement in _SCHEMA:
            conn.execute(text(statement))
        for member_id, platform_id, account_name, nickname in MEMBERS:
            conn.execute(
                text(
                    "INSERT INTO member (id, platform_id, account_name, group_nickname) "
                    "VALUES (:id, :platform_id, :account_name, :nickname)"
                ),
                {
                    "id": member_id,
                    "platform_id": platform_id,
                    "account_name": account_name,
                    "nickname": nickname,
                },
            )
        for session_id, start_ts, end_ts, messages in SESSIONS:
            conn.execute(
                text(
                    "INSERT INTO chat_session (id, start_ts, end_ts, message_count) "
                    "VALUES (:id, :start_ts, :end_ts, :count)"
                ),
                {"id": session_id, "start_ts": start_ts, "end_ts": end_ts, "count": len(messages)},
            )
            for sender_id, offset, msg_type, content in messages:
                message_id += 1
                conn.execute(
                    text(
                        "INSERT INTO message (id, sender_id, ts, type, content) "
                        "VALUES (:id, :sender_id, :ts, :type, :content)"
                    ),
                    {
                        "id": message_id,
                        "sender_id": sender_id,
                        "ts": start_ts + offset,
                        "type": msg_type,
                        "content": content,
                    },
                )
                conn.execute(
                    text(
                        "INSERT INTO message_context (message_id, session_id) "
                        "VALUES (:message_id, :session_id)"
                    ),
                    {"message_id": message_id, "session_id": session_id},
                )
    engine.dispose()


@pytest.fixture
def chat_db(tmp_path):
    db_path = tmp_path / "chat.db"
    build_chat_db(db_path)
    return db_path
