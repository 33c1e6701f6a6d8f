import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from sqlalchemy import func, desc
from sqlmodel import Session, select

from app.core.errors import ValidationError
from app.models.stored_link import StoredLink

logger = logging.getLogger(__name__)


def parse_links(raw: Iterable[Optional[str]]) -> List[str]:
    """Flatten pasted entries into one trimmed link per non-empty line."""
    links = []
    for entry in raw:
        if not entry:
            continue
        for line in entry.splitlines():
            line = line.strip()
            if line:
                links.append(line)
    return links


class LinkPoolService:
    def __init__(self, session: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.session = session
        self.clock = clock

    def import_links(self, urls: Optional[Iterable[str]], owner_id: str) -> int:
        links = parse_links(urls or [])
        if not links:
            raise ValidationError("No links provided")

        now = self.clock()
        for link in links:
            self.session.add(StoredLink(link=link, created_by=owner_id, created_at=now))
        self.session.commit()

        logger.info("Imported %s links for owner %s", len(links), owner_id)
        return len(links)

    def stats(self, owner_id: str) -> Dict[str, int]:
        total = self.session.exec(
            select(func.count(StoredLink.id)).where(StoredLink.created_by == owner_id)
        ).first() or 0
        available = self.session.exec(
            select(func.count(StoredLink.id)).where(
                StoredLink.created_by == owner_id,
                StoredLink.is_used == False  # noqa: E712
            )
        ).first() or 0
        return {"total": total, "available": available}

    def list_links(self, owner_id: str, used: Optional[bool] = None, limit: int = 100) -> List[StoredLink]:
        query = select(StoredLink).where(StoredLink.created_by == owner_id)
        if used is not None:
            query = query.where(StoredLink.is_used == used)
        return self.session.exec(
            query.order_by(desc(StoredLink.created_at), desc(StoredLink.id)).limit(limit)
        ).all()
