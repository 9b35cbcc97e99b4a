import uuid
import logging
from datetime import datetime
from typing import Dict

from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.submission import Submission

logger = logging.getLogger(__name__)

UPSERT_COLUMNS = ("payload", "signature_png", "signed_pdf_path", "submitted_at")


def _upsert_statement(dialect_name: str, values: dict):
    if dialect_name in ("postgresql", "sqlite"):
        insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
        stmt = insert(Submission).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[Submission.invite_id],
            set_={column: stmt.excluded[column] for column in UPSERT_COLUMNS},
        )
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql.insert(Submission).values(**values)
        return stmt.on_duplicate_key_update(**{column: stmt.inserted[column] for column in UPSERT_COLUMNS})
    raise NotImplementedError(f"Submission upsert is not supported on {dialect_name}")


async def upsert_submission(
    db: AsyncSession,
    invite_id: uuid.UUID,
    payload: Dict[str, str],
    signature_png: str,
    submitted_at: datetime,
) -> Submission:
    """
    Inserts the invite's submission or overwrites it in place.

    Relies on the unique constraint on invite_id, so two concurrent submits
    for one invite still leave a single row. The previous artifact reference
    is cleared; the caller fills it in once the new PDF exists. Does not commit.
    """
    values = {
        "id": uuid.uuid4(),
        "invite_id": invite_id,
        "payload": payload,
        "signature_png": signature_png,
        "signed_pdf_path": None,
        "submitted_at": submitted_at,
    }
    await db.execute(_upsert_statement(db.get_bind().dialect.name, values))
    logger.info("Upserted submission for invite %s", invite_id)

    result = await db.execute(
        select(Submission)
        .where(Submission.invite_id == invite_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().one()

