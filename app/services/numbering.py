from sqlalchemy import func, select
from sqlalchemy.orm import Session, InstrumentedAttribute


def next_number(db: Session, column: InstrumentedAttribute, prefix: str, width: int) -> str:
    """Next ``{prefix}{seq}`` value, e.g. ``REQ-2026-0007`` after ``REQ-2026-0006``.

    ``width`` is the minimum padding; once a counter outgrows it the longer
    values sort last, so ``IT-2026-1000`` follows ``IT-2026-999``.
    Two requests racing for the same number hit the column's unique
    constraint; ``transactional`` reports that as Conflict.
    """
    last = db.scalar(
        select(column)
        .where(column.startswith(prefix))
        .order_by(func.length(column).desc(), column.desc())
        .limit(1)
    )
    seq = 1
    if last:
        tail = last[len(prefix):]
        if tail.isdigit():
            seq = int(tail) + 1
    return f"{prefix}{seq:0{width}d}"
