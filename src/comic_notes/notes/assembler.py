from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from comic_notes.metadata.models import IssueRecord, PersonCredit, PersonRecord, VolumeRecord
from comic_notes.notes.frontmatter import compose_document
from comic_notes.notes.headers import (
    IssueHeader,
    NoteHeader,
    PersonHeader,
    RoleHeader,
    VolumeHeader,
)
from comic_notes.utils.dates import decompose_date
from comic_notes.utils.roles import role_to_ontology_key, sort_roles, split_roles
from comic_notes.utils.text import (
    clean_description,
    sanitize_cross_ref,
    sanitize_filename,
    sanitize_tag,
    wikilink,
)

ISSUE_TAG = "comic"
CREATOR_TAG = "comic-creator"
ROLE_TAG = "comic-role"
VOLUME_TAG = "comic-volume"


@dataclass(frozen=True)
class NoteDraft:
    header: NoteHeader
    body: str

    def render(self) -> str:
        header = self.header.to_header()
        return compose_document(header, self.body, comments=type(self.header).comments_for(header))


@dataclass(frozen=True)
class CoverRef:
    """Either a remote image URL or a vault path of a downloaded copy, never both."""

    remote_url: str | None = None
    local_path: str | None = None

    def __post_init__(self) -> None:
        if self.remote_url and self.local_path:
            raise ValueError("cover is either remote or local")

    def embed(self, alt: str, width: int = 150) -> str | None:
        if self.local_path:
            return f"![[{self.local_path}|{width}]]"
        if self.remote_url:
            return f"![{alt}|{width}]({self.remote_url})"
        return None


@dataclass
class IssueCredits:
    """People per canonical role, in first-seen order."""

    by_role: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_issue(cls, issue: IssueRecord) -> "IssueCredits":
        by_role: dict[str, list[str]] = {}
        for credit in issue.person_credits:
            if not credit.name:
                continue
            for role in split_roles(credit.role):
                people = by_role.setdefault(role, [])
                if credit.name not in people:
                    people.append(credit.name)
        return cls(by_role=by_role)

    def by_ontology_key(self) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for role, people in self.by_role.items():
            links = out.setdefault(role_to_ontology_key(role), [])
            for person in people:
                link = wikilink(person)
                if link and link not in links:
                    links.append(link)
        return out

    def ordered_roles(self) -> list[str]:
        return sort_roles(list(self.by_role))


def issue_note_stem(volume_name: str, issue_number: str) -> str:
    """File name (without extension) of an issue note, e.g. "Uncanny X-Men 141"."""
    number = sanitize_filename(issue_number).rjust(3, "0")
    return sanitize_filename(f"{sanitize_filename(volume_name)} {number}")


def issue_title(volume_name: str, issue_number: str) -> str:
    return f"{volume_name} #{issue_number}"


def _unique_names(refs: list[Any]) -> list[str]:
    out: list[str] = []
    for ref in refs:
        if ref.name and ref.name not in out:
            out.append(ref.name)
    return out


def _links(names: list[str]) -> list[str]:
    out: list[str] = []
    for name in names:
        link = wikilink(name)
        if link and link not in out:
            out.append(link)
    return out


def build_issue_note(
    issue: IssueRecord,
    volume: VolumeRecord,
    *,
    cover: CoverRef | None = None,
    reading_tracker: bool = True,
    page_count: int = 22,
) -> NoteDraft:
    volume_name = volume.name or (issue.volume.name if issue.volume else "")
    publisher = volume.publisher_name
    credits = IssueCredits.from_issue(issue)
    characters = _unique_names(issue.character_credits)
    story_arcs = _unique_names(issue.story_arc_credits)
    cover = cover or CoverRef(remote_url=issue.image.best_url if issue.image else None)

    publication = decompose_date(issue.cover_date)
    store = decompose_date(issue.store_date)

    fields: dict[str, Any] = {
        "title": issue_title(volume_name, issue.issue_number),
        "volume": wikilink(volume_name),
        "issue_number": issue.issue_number,
        "publisher": wikilink(publisher),
        "publication_date": publication.to_header() if publication else None,
        "store_date": store.to_header() if store else None,
        "deck": issue.deck,
        "cover_url": cover.remote_url,
        "cover_image": cover.local_path,
        "comic_vine_id": issue.id,
        "comic_vine_url": issue.site_detail_url,
        "volume_start_year": volume.start_year,
        "features": _links(characters),
        "part_of_story_arc": _links(story_arcs),
        "tags": list(dict.fromkeys([ISSUE_TAG, sanitize_tag(publisher), sanitize_tag(volume_name)])),
    }
    if reading_tracker:
        fields.update(pages=page_count, current_page=0, percent_complete=0, last_read=None, type="comic")
    header = IssueHeader(**fields, **credits.by_ontology_key())
    body = _issue_body(issue, volume_name, publisher, credits, characters, story_arcs, cover)
    return NoteDraft(header=header, body=body)


def _issue_body(
    issue: IssueRecord,
    volume_name: str,
    publisher: str,
    credits: IssueCredits,
    characters: list[str],
    story_arcs: list[str],
    cover: CoverRef,
) -> str:
    lines: list[str] = [""]
    embed = cover.embed("cover")
    if embed:
        lines += [embed, ""]
    lines.append(f"## {issue_title(volume_name, issue.issue_number)}")
    if issue.name and issue.name != volume_name:
        lines += [f"*{issue.name}*", ""]
    else:
        lines.append("")

    published = f"**Published:** {issue.cover_date or 'Unknown date'}"
    publisher_link = wikilink(publisher)
    if publisher_link:
        published += f" by {publisher_link}"
    lines += [published, ""]

    if credits.by_role:
        lines.append("### Creative Team")
        for role in credits.ordered_roles():
            for person in credits.by_role[role]:
                link = wikilink(person)
                if link:
                    lines.append(f"- **{role}:** {link}")
        lines.append("")

    if characters:
        lines.append("### Characters")
        lines += [f"- {link}" for link in _links(characters)]
        lines.append("")

    if story_arcs:
        lines.append("### Story Arc")
        lines += [f"- Part of: {link}" for link in _links(story_arcs)]
        lines.append("")

    description = clean_description(issue.description) or (issue.deck or "")
    if description:
        lines += ["### Description", description, ""]

    lines += ["### Reading Notes", "*Add your thoughts here...*", ""]
    lines += ["### Key Events", "- ", ""]
    lines.append("### References")
    if issue.site_detail_url:
        lines.append(f"- [ComicVine]({issue.site_detail_url})")
    return "\n".join(lines) + "\n"


def credit_entry(role: str, work_stem: str) -> str | None:
    """Credit list entry for a person, e.g. "[[Penciler]] on [[Uncanny X-Men 141]]"."""
    role_link = wikilink(role)
    work_link = wikilink(work_stem)
    if not role_link or not work_link:
        return None
    return f"{role_link} on {work_link}"


def build_person_note(
    credit: PersonCredit,
    *,
    person: PersonRecord | None = None,
    roles: list[str],
    work_stem: str | None = None,
) -> NoteDraft:
    """
    Person note from a credit, enriched with the person's detail record if fetched.

    `roles` are canonical role names; `work_stem` is the issue note the credit
    refers to.
    """
    name = (person.name if person and person.name else credit.name) or ""
    birth = decompose_date(person.birth) if person else None
    death = decompose_date(person.death) if person else None
    credits: list[str] = []
    if work_stem:
        for role in roles:
            entry = credit_entry(role, work_stem)
            if entry and entry not in credits:
                credits.append(entry)

    header = PersonHeader(
        name=name,
        birth_date=birth.to_header() if birth else None,
        death_date=death.to_header() if death else None,
        deck=person.deck if person else None,
        comic_vine_id=person.id if person else credit.id,
        comic_vine_url=(person.site_detail_url if person else None) or credit.site_detail_url,
        roles=_links(roles),
        credits=credits,
        tags=[CREATOR_TAG],
    )
    return NoteDraft(header=header, body=_person_body(name, person, header.comic_vine_url))


def _person_body(name: str, person: PersonRecord | None, url: str | None) -> str:
    lines: list[str] = [""]
    image = person.image.best_url if person and person.image else None
    if image:
        lines += [f"![image|150]({image})", ""]
    lines += [f"# {name}", ""]
    if person and person.deck:
        lines += [person.deck, ""]
    description = clean_description(person.description) if person else ""
    if description:
        lines += ["## Biography", description, ""]
    lines += ["## Works", "*This section can be populated by other plugins or backlinks.*", ""]
    lines.append("### References")
    if url:
        lines.append(f"- [ComicVine Profile]({url})")
    return "\n".join(lines) + "\n"


def build_role_note(name: str, *, parent: str | None = None) -> NoteDraft:
    parent_link = wikilink(parent) if parent else None
    header = RoleHeader(name=name, sub_concept_of=parent_link, tags=[ROLE_TAG])
    lines = ["", f"# {sanitize_cross_ref(name)}", ""]
    if parent_link:
        lines += [f"A kind of {parent_link}.", ""]
    lines += ["## Creators", "*Creators credited with this role link here.*"]
    return NoteDraft(header=header, body="\n".join(lines) + "\n")


def build_volume_note(volume: VolumeRecord, *, issue_stem: str | None = None) -> NoteDraft:
    publisher = volume.publisher_name
    header = VolumeHeader(
        name=volume.name,
        publisher=wikilink(publisher),
        start_year=volume.start_year,
        issue_count=volume.count_of_issues,
        comic_vine_id=volume.id,
        comic_vine_url=volume.site_detail_url,
        issues=[wikilink(issue_stem)] if issue_stem else [],
        tags=[VOLUME_TAG, sanitize_tag(publisher)],
    )
    lines: list[str] = [""]
    image = volume.image.best_url if volume.image else None
    if image:
        lines += [f"![cover|150]({image})", ""]
    heading = volume.name if not volume.start_year else f"{volume.name} ({volume.start_year})"
    lines += [f"# {heading}", ""]
    if volume.deck:
        lines += [volume.deck, ""]
    description = clean_description(volume.description)
    if description:
        lines += ["## Description", description, ""]
    lines += ["## Issues", "*Imported issues are listed in the `issues` field.*"]
    return NoteDraft(header=header, body="\n".join(lines) + "\n")
