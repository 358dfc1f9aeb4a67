"""
Search and import orchestration.

One import runs in two phases. The fetch phase talks to ComicVine (issue
detail, existing-note check, volume detail, details for creators without a
note yet, optional cover download); the write phase then creates or merges
notes in dependency order: roles, creators, volume, cover file, issue note.
Nothing is written until every fetch has finished, so cancelling an import
leaves the vault as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Protocol

import httpx

from comic_notes.cancellation import CancellationToken
from comic_notes.errors import Cancelled, ComicNotesError, DecodeError, FetchError
from comic_notes.metadata.comicvine_client import ComicVineClient
from comic_notes.metadata.models import (
    IssueRecord,
    IssueSummary,
    PersonCredit,
    PersonRecord,
    SearchResults,
    VolumeRecord,
)
from comic_notes.notes.assembler import (
    CoverRef,
    build_issue_note,
    build_person_note,
    build_volume_note,
    issue_note_stem,
    issue_title,
)
from comic_notes.resolve.upsert import UpsertEngine, UpsertResult, utc_now
from comic_notes.settings import Settings
from comic_notes.utils.roles import sort_roles, split_roles
from comic_notes.vault.store import Document, DocumentStore, VaultLayout

logger = logging.getLogger(__name__)

VOLUME_PAGE_SIZE = 100

ConfirmOverwrite = Callable[[Document], bool]


class Notifier(Protocol):
    def notify(self, message: str, *, error: bool = False) -> None:
        ...


class LoggingNotifier:
    def notify(self, message: str, *, error: bool = False) -> None:
        logger.log(logging.WARNING if error else logging.INFO, message)


@dataclass(frozen=True)
class EntityFailure:
    kind: str
    name: str
    action: str
    error: BaseException

    @property
    def message(self) -> str:
        return f"Could not {self.action} {self.kind} {self.name}: {self.error}"


@dataclass
class ImportReport:
    issue_id: int
    issue_document: Document | None = None
    outcomes: list[UpsertResult] = field(default_factory=list)
    failures: list[EntityFailure] = field(default_factory=list)
    skipped: bool = False
    cover: Document | None = None

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class BatchReport:
    volume_id: int
    reports: list[ImportReport] = field(default_factory=list)
    failures: list[EntityFailure] = field(default_factory=list)

    @property
    def imported(self) -> list[ImportReport]:
        return [r for r in self.reports if r.issue_document is not None]


@dataclass
class _PendingCreator:
    credit: PersonCredit
    roles: list[str]
    existing: Document | None = None
    person: PersonRecord | None = None
    failed: bool = False


def _never_overwrite(document: Document) -> bool:
    return False


def _cover_extension(url: str) -> str:
    suffix = PurePosixPath(httpx.URL(url).path).suffix.lstrip(".").lower()
    return suffix or "jpg"


class ComicImporter:
    def __init__(
        self,
        client: ComicVineClient,
        store: DocumentStore,
        settings: Settings,
        *,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utc_now,
        layout: VaultLayout | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.settings = settings
        self.notifier = notifier or LoggingNotifier()
        self.layout = layout or VaultLayout.from_settings(settings)
        self.engine = UpsertEngine(store, self.layout, clock=clock)

    async def search(
        self,
        query: str,
        *,
        limit: int = 10,
        token: CancellationToken | None = None,
    ) -> SearchResults:
        return await self.client.search(query, limit=limit, token=token)

    async def import_issue(
        self,
        issue_id: int,
        *,
        token: CancellationToken | None = None,
        confirm_overwrite: ConfirmOverwrite = _never_overwrite,
    ) -> ImportReport:
        """
        Import one issue and the notes it links to.

        Raises `FetchError` if the issue or its volume cannot be fetched,
        `InvalidNoteName` if the issue has no usable note file name, and
        `Cancelled` if `token` fires before the write phase. Failures for a
        single creator, role, volume note or cover are collected in the
        report instead.
        """
        return await self._import_issue(issue_id, token=token, confirm_overwrite=confirm_overwrite, volumes={})

    async def import_volume(
        self,
        volume_id: int,
        *,
        token: CancellationToken | None = None,
        limit: int | None = None,
        confirm_overwrite: ConfirmOverwrite = _never_overwrite,
    ) -> BatchReport:
        """Import every listed issue of a volume; one failing issue does not stop the rest."""
        summaries: list[IssueSummary] = []
        offset = 0
        while limit is None or len(summaries) < limit:
            page_size = VOLUME_PAGE_SIZE if limit is None else min(VOLUME_PAGE_SIZE, limit - len(summaries))
            page = await self.client.list_volume_issues(volume_id, limit=page_size, offset=offset, token=token)
            summaries.extend(page)
            offset += len(page)
            if len(page) < page_size:
                break

        batch = BatchReport(volume_id=volume_id)
        volumes: dict[int, VolumeRecord] = {}
        for summary in summaries:
            try:
                report = await self._import_issue(
                    summary.id,
                    token=token,
                    confirm_overwrite=confirm_overwrite,
                    volumes=volumes,
                )
            except Cancelled:
                raise
            except (ComicNotesError, OSError) as exc:
                failure = EntityFailure("issue", f"#{summary.issue_number or summary.id}", "import", exc)
                batch.failures.append(failure)
                self.notifier.notify(failure.message, error=True)
                continue
            batch.reports.append(report)
        return batch

    # -- internals -------------------------------------------------------------

    def _fail(self, report: ImportReport, failure: EntityFailure) -> None:
        report.failures.append(failure)
        self.notifier.notify(failure.message, error=True)

    async def _import_issue(
        self,
        issue_id: int,
        *,
        token: CancellationToken | None,
        confirm_overwrite: ConfirmOverwrite,
        volumes: dict[int, VolumeRecord],
    ) -> ImportReport:
        report = ImportReport(issue_id=issue_id)

        # fetch phase
        issue = await self.client.get_issue(issue_id, token=token)
        if issue.volume is None:
            raise DecodeError(f"Issue {issue_id} has no volume")

        stem = issue_note_stem(issue.volume.name, issue.issue_number)
        issue_path = self.layout.issue_path(stem)
        overwrite = False
        if self.store.exists(issue_path):
            overwrite = bool(confirm_overwrite(Document(issue_path)))
            if not overwrite:
                report.skipped = True
                self.notifier.notify(f"Issue note already exists, skipped: {issue_path}")
                return report

        volume = volumes.get(issue.volume.id)
        if volume is None:
            volume = await self.client.get_volume(issue.volume.id, token=token)
            volumes[issue.volume.id] = volume

        creators = await self._fetch_creators(issue, report, token)
        cover_data, cover_url = await self._fetch_cover(issue, stem, report, token)

        if token is not None:
            token.raise_if_cancelled()

        # write phase
        if self.settings.create_creator_notes:
            self._write_roles(creators, report)
            self._write_creators(creators, stem, report)
        if self.settings.create_auxiliary_notes:
            self._write_volume(volume, stem, report)
        cover = self._write_cover(cover_data, cover_url, stem, report)

        draft = build_issue_note(
            issue,
            volume,
            cover=cover,
            reading_tracker=self.settings.enable_reading_tracker,
            page_count=self.settings.default_page_count,
        )
        text = draft.render()
        if overwrite:
            document = Document(issue_path)
            self.store.modify(document, text)
        else:
            document = self.store.create(issue_path, text)
        report.issue_document = document
        self.notifier.notify(f"Imported {issue_title(volume.name or issue.volume.name, issue.issue_number)}")
        return report

    async def _fetch_creators(
        self,
        issue: IssueRecord,
        report: ImportReport,
        token: CancellationToken | None,
    ) -> list[_PendingCreator]:
        if not self.settings.create_creator_notes:
            return []

        by_id: dict[int, _PendingCreator] = {}
        for credit in issue.person_credits:
            if not credit.name:
                continue
            pending = by_id.setdefault(credit.id, _PendingCreator(credit=credit, roles=[]))
            for role in split_roles(credit.role):
                if role not in pending.roles:
                    pending.roles.append(role)

        creators = list(by_id.values())
        for pending in creators:
            pending.existing = self.engine.find_person(pending.credit.id, pending.credit.name)
            if pending.existing is not None:
                # known creators are merged from the credit alone
                continue
            try:
                pending.person = await self.client.get_person(
                    pending.credit.api_detail_url or pending.credit.id,
                    token=token,
                )
            except Cancelled:
                raise
            except FetchError as exc:
                pending.failed = True
                self._fail(report, EntityFailure("creator", pending.credit.name, "fetch", exc))
        return creators

    async def _fetch_cover(
        self,
        issue: IssueRecord,
        stem: str,
        report: ImportReport,
        token: CancellationToken | None,
    ) -> tuple[bytes | None, str | None]:
        url = issue.image.best_url if issue.image else None
        if not url or not self.settings.download_images:
            return None, url
        try:
            return await self.client.download(url, token=token), url
        except Cancelled:
            raise
        except FetchError as exc:
            self._fail(report, EntityFailure("cover", stem, "download", exc))
            return None, url

    def _write_roles(self, creators: list[_PendingCreator], report: ImportReport) -> None:
        roles: list[str] = []
        for pending in creators:
            for role in pending.roles:
                if role not in roles:
                    roles.append(role)
        for role in sort_roles(roles):
            try:
                report.outcomes.extend(self.engine.resolve_role(role))
            except (ComicNotesError, OSError) as exc:
                self._fail(report, EntityFailure("role", role, "write", exc))

    def _write_creators(self, creators: list[_PendingCreator], stem: str, report: ImportReport) -> None:
        for pending in creators:
            if pending.failed:
                continue
            name = pending.credit.name
            draft = build_person_note(pending.credit, person=pending.person, roles=pending.roles, work_stem=stem)
            try:
                report.outcomes.append(self.engine.upsert_person(pending.credit.id, name, draft))
            except (ComicNotesError, OSError) as exc:
                self._fail(report, EntityFailure("creator", name, "write", exc))

    def _write_volume(self, volume: VolumeRecord, stem: str, report: ImportReport) -> None:
        try:
            draft = build_volume_note(volume, issue_stem=stem)
            report.outcomes.append(self.engine.upsert_volume(volume.id, volume.name, draft))
        except (ComicNotesError, OSError) as exc:
            self._fail(report, EntityFailure("volume", volume.name, "write", exc))

    def _write_cover(
        self,
        data: bytes | None,
        url: str | None,
        stem: str,
        report: ImportReport,
    ) -> CoverRef:
        if data is None or url is None:
            return CoverRef(remote_url=url)
        path = self.layout.cover_path(stem, _cover_extension(url))
        try:
            report.cover = self.store.write_binary(path, data)
        except OSError as exc:
            self._fail(report, EntityFailure("cover", stem, "write", exc))
            return CoverRef(remote_url=url)
        return CoverRef(local_path=report.cover.path)
