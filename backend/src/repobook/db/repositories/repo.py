"""
Repository (GitHub project) repository.
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from repobook.db.repositories.base import BaseRepository
from repobook.github.resolver import RepositoryRef
from repobook.models.db import Repository


class RepoRepository(BaseRepository[Repository]):
    """Repository for Repository model."""

    def __init__(self, session: Session):
        super().__init__(Repository, session)

    def get_by_url(self, url: str) -> Optional[Repository]:
        """Get repository by its canonical URL."""
        return self.session.query(Repository).filter(Repository.url == url).first()

    def upsert(self, ref: RepositoryRef) -> Repository:
        """
        Insert a repository or refresh its name, keyed on the canonical URL.

        Concurrent callers with the same URL converge on a single row; only
        `name` changes on conflict.

        Args:
            ref: Resolved repository reference

        Returns:
            The persisted Repository
        """
        dialect = self.session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

        stmt = insert(Repository).values(name=ref.name, url=ref.canonical_url)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Repository.url],
            set_={"name": stmt.excluded.name, "updated_at": func.now()},
        )
        self.session.execute(stmt)

        return (
            self.session.query(Repository)
            .filter(Repository.url == ref.canonical_url)
            .populate_existing()
            .one()
        )
