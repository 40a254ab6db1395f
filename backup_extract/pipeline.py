"""
Pipeline orchestration.

Two independent pipelines run against one backup:

    Artifact pipeline:
        FilterSpec -> Manifest.db query -> shard path -> collision-safe copy

    Correlation pipeline:
        AddressBook -> contact export + PhoneIndex
        sms.db + PhoneIndex -> one transcript per conversation

They share no mutable state. Each opens its own connections, scoped to the
run and closed on every exit path, and reports failures in its result rather
than raising, so a caller can still run the other pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import List, Optional, Sequence
import logging

from backup_extract.config import Config
from backup_extract.contacts import PhoneIndex, load_phone_index
from backup_extract.copier import DomainResult, extract_domain
from backup_extract.correlator import CorrelationResult, correlate_all
from backup_extract.database import DatabaseConnection
from backup_extract.errors import CatalogUnavailable, ExtractionError
from backup_extract.export import export_contacts
from backup_extract.filters import DEFAULT_FILTERS, FilterSpec

logger = logging.getLogger(__name__)

MANIFEST_TABLES = ("Files",)
SMS_TABLES = (
    "chat",
    "chat_message_join",
    "message",
    "handle",
    "message_attachment_join",
    "attachment",
)


@dataclass
class ArtifactResult:
    """Result of an artifact extraction run."""

    success: bool
    domains: List[DomainResult] = field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def files_copied(self) -> int:
        return sum(d.copied_count for d in self.domains)

    @property
    def files_renamed(self) -> int:
        return sum(d.renamed_count for d in self.domains)

    @property
    def failed_domains(self) -> List[str]:
        return [d.domain for d in self.domains if not d.success]

    def __str__(self) -> str:
        status = "SUCCESS" if self.success else f"FAILED: {self.error}"
        lines = [f"Artifact extraction {status}"]
        for d in self.domains:
            state = "ok" if d.success else f"stopped: {d.error}"
            lines.append(
                f"  {d.domain}: {d.copied_count}/{d.records_found} copied, "
                f"{d.renamed_count} renamed ({state})"
            )
        lines.append(f"  Duration: {self.duration_seconds:.2f}s")
        return "\n".join(lines)


@dataclass
class CorrelationRunResult:
    """Result of a contact export and conversation correlation run."""

    success: bool
    contacts_exported: int = 0
    contacts_indexed: int = 0
    correlation: CorrelationResult = field(default_factory=CorrelationResult)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def __str__(self) -> str:
        status = "SUCCESS" if self.success else f"FAILED: {self.error}"
        return (
            f"Correlation {status}\n"
            f"  Contacts: {self.contacts_exported} exported, {self.contacts_indexed} indexed\n"
            f"  Transcripts: {self.correlation.transcripts_written} of "
            f"{self.correlation.conversations_found} conversations, "
            f"{self.correlation.messages_written} messages\n"
            f"  Duration: {self.duration_seconds:.2f}s"
        )


def _elapsed(start_time: datetime) -> float:
    return (datetime.now() - start_time).total_seconds()


def run_artifact_pipeline(
    config: Config,
    filters: Sequence[FilterSpec] = DEFAULT_FILTERS,
    *,
    stop_on_error: bool = False,
    use_memory: bool = False,
) -> ArtifactResult:
    """
    Copy every filtered artifact out of the backup.

    A failing domain stops its own extraction; the remaining domains still run
    unless stop_on_error is set.

    Args:
        config: Run configuration.
        filters: Filter specifications, processed in order.
        stop_on_error: Skip the remaining domains after the first failure.
        use_memory: Load Manifest.db into RAM first.

    Returns:
        ArtifactResult with one DomainResult per processed filter.
    """
    start_time = datetime.now()
    result = ArtifactResult(success=True)

    try:
        config.ensure_output_dirs(spec.destination_folder for spec in filters)

        with DatabaseConnection(
            config.manifest_db_path, use_memory=use_memory, label="Manifest.db"
        ) as db:
            db.require_tables(*MANIFEST_TABLES)

            for spec in filters:
                domain_result = extract_domain(
                    db,
                    spec,
                    config.backup_root,
                    config.destination_for(spec.destination_folder),
                )
                result.domains.append(domain_result)

                if not domain_result.success:
                    result.success = False
                    result.error = str(domain_result.error)
                    if stop_on_error:
                        logger.warning("Stopping artifact extraction after first failure")
                        break

    except (ExtractionError, OSError) as e:
        logger.error(f"Artifact extraction failed: {e}")
        result.success = False
        result.error = str(e)

    result.duration_seconds = _elapsed(start_time)
    return result


def _load_phone_index(config: Config, use_memory: bool) -> PhoneIndex:
    """Load the PhoneIndex, or an empty one when the AddressBook is unusable."""
    if not config.validate_contacts():
        logger.warning(f"Contacts DB not found: {config.contacts_db_path}")
        return MappingProxyType({})

    try:
        with DatabaseConnection(
            config.contacts_db_path, use_memory=use_memory, label="AddressBook"
        ) as db:
            return load_phone_index(db)
    except CatalogUnavailable as e:
        logger.warning(f"Contacts DB not accessible, senders stay unresolved: {e}")
        return MappingProxyType({})


def run_contact_export(config: Config, *, use_memory: bool = False) -> int:
    """
    Write the flat contact export table.

    Returns:
        Number of contacts exported.

    Raises:
        CatalogUnavailable: If the AddressBook is missing or unreadable.
    """
    config.ensure_output_dirs()
    with DatabaseConnection(
        config.contacts_db_path, use_memory=use_memory, label="AddressBook"
    ) as db:
        return export_contacts(db, config.contacts_export_path)


def run_correlation_pipeline(
    config: Config,
    *,
    export_contacts_table: bool = True,
    use_memory: bool = False,
) -> CorrelationRunResult:
    """
    Export contacts and write one transcript per conversation.

    A missing AddressBook is not fatal: the contact export is skipped and
    every sender stays unresolved. A failing sms.db query aborts the pass;
    transcripts already written stay on disk.

    Args:
        config: Run configuration.
        export_contacts_table: Also write the flat contact export.
        use_memory: Load each store into RAM first.

    Returns:
        CorrelationRunResult with counts and the error, if any.
    """
    start_time = datetime.now()
    result = CorrelationRunResult(success=True)

    if export_contacts_table:
        try:
            result.contacts_exported = run_contact_export(config, use_memory=use_memory)
        except (CatalogUnavailable, OSError) as e:
            logger.warning(f"Contact export skipped: {e}")

    phone_index = _load_phone_index(config, use_memory)
    result.contacts_indexed = len(phone_index)

    try:
        config.ensure_output_dirs()
        with DatabaseConnection(config.sms_db_path, use_memory=use_memory, label="sms.db") as db:
            db.require_tables(*SMS_TABLES)
            correlate_all(db, phone_index, config.output_dir, result.correlation)
    except (ExtractionError, OSError) as e:
        logger.error(f"Correlation failed: {e}")
        result.success = False
        result.error = str(e)

    result.duration_seconds = _elapsed(start_time)
    return result
