"""Print chat transcripts stored in the project's SQLite database.

Prints every session (most recently active first), or only the sessions
given on the command line. The database directory comes from the same
settings as the application (`DATABASE_DIR`, default `database`).

Run: `python print_db.py [session_id ...]`.
"""
import asyncio
import sys
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from dal.chat_message_dal import ChatMessageDAL
from models.chat_message import ChatMessage
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import get_settings


def format_transcript(session_id: str, messages: Iterable[ChatMessage]) -> str:
    """Render one session as `[timestamp] ROLE: text` lines under a header.

    Args:
        session_id: Session whose messages are rendered.
        messages: Messages in chronological order.
    """
    lines: List[str] = [f"Session: {session_id}"]
    for msg in messages:
        stamp = datetime.fromtimestamp(msg.created_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        lines.append(f"  [{stamp}] {msg.role.upper()}: {msg.text}")
    return "\n".join(lines)


async def main(session_ids: List[str], db_dir: Optional[str] = None) -> None:
    """Print full transcripts for the requested sessions (all when none given).

    `db_dir` defaults to the application setting, so DATABASE_DIR is optional here too.
    """
    dal = ChatMessageDAL(AsyncDatabaseInitializer(db_dir or get_settings().database_dir))
    targets = session_ids or await dal.list_session_ids()
    for session_id in targets:
        messages = await dal.read_session(session_id)
        print(format_transcript(session_id, messages))
        print()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
