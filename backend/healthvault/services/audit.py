"""
AuditLogService: append-only access logging.

One entry per cross-principal read. Entries never hold health payloads,
only the data types touched and what authorized the read.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session as DbSession

from healthvault.db.session import get_db_session, transaction
from healthvault.models import AccessLogEntry
from healthvault.services.ledger import LOG_SEQUENCE, LogicalClockService, allocate_id


class AuditLogService:
    """
    Append-only audit log.

    ``append`` joins the caller's transaction when there is one, so the log
    entry commits together with the read it describes.
    """

    def __init__(self, db_session: Optional[DbSession] = None):
        self._db = db_session
        self.logger = logging.getLogger("service.AuditLogService")

    @property
    def db(self) -> DbSession:
        if self._db is None:
            self._db = get_db_session()
        return self._db

    def append(
        self,
        owner: str,
        accessor: str,
        data_types_accessed: Sequence[str],
        permission_id: Optional[int],
        access_basis: str,
        record_id: Optional[int] = None,
        timestamp: Optional[int] = None,
    ) -> AccessLogEntry:
        """
        Append an entry to the access log.

        This is INSERT-only; entries are never updated or deleted.
        """
        with transaction(self.db):
            if timestamp is None:
                timestamp = LogicalClockService(self.db).now()
            entry = AccessLogEntry(
                log_id=allocate_id(self.db, LOG_SEQUENCE),
                owner=owner,
                accessor=accessor,
                timestamp=timestamp,
                data_types_accessed=list(data_types_accessed),
                permission_id=permission_id,
                access_basis=access_basis,
                record_id=record_id,
            )
            self.db.add(entry)
            self.db.flush()
        self.logger.info(
            f"Access logged: log_id={entry.log_id} owner={owner} accessor={accessor} "
            f"basis={access_basis} permission_id={permission_id}"
        )
        return entry

    def get_access_log(self, owner: str, log_id: int) -> Optional[AccessLogEntry]:
        return (
            self.db.query(AccessLogEntry)
            .filter(AccessLogEntry.owner == owner, AccessLogEntry.log_id == log_id)
            .first()
        )

    def list_access_logs(self, owner: str) -> List[AccessLogEntry]:
        """All entries for an owner in log-id order."""
        return (
            self.db.query(AccessLogEntry)
            .filter(AccessLogEntry.owner == owner)
            .order_by(AccessLogEntry.log_id.asc())
            .all()
        )
