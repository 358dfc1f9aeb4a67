from __future__ import annotations

from comic_notes.notes.headers import IssueHeader, PersonHeader, RoleHeader, merge_header, new_header

NOW = "2024-05-01T12:00:00+00:00"
EARLIER = "2020-01-01T00:00:00+00:00"


def byrne_fresh() -> PersonHeader:
    return PersonHeader(
        name="John Byrne",
        deck="From the API",
        comic_vine_id=1002,
        roles=["[[Penciler]]", "[[Inker]]"],
        credits=[
            "[[Penciler]] on [[Uncanny X-Men 141]]",
            "[[Inker]] on [[Uncanny X-Men 141]]",
        ],
        tags=["comic-creator"],
    )


def test_new_header_key_order_and_timestamps() -> None:
    header = new_header(PersonHeader(name="A", comic_vine_id=1, tags=["comic-creator"]), now=NOW)
    assert list(header) == ["entityType", "name", "comicVineId", "tags", "created", "modified"]
    assert header["created"] == NOW
    assert header["modified"] == NOW


def test_merge_keeps_user_edits_and_unions_lists() -> None:
    existing = {
        "entityType": "ComicCreator",
        "name": "John Byrne",
        "deck": "User edited",
        "roles": ["[[Penciler]]"],
        "credits": ["[[Penciler]] on [[Uncanny X-Men 141]]"],
        "tags": ["comic-creator", "favorite"],
        "created": EARLIER,
        "modified": EARLIER,
        "myRating": 5,
    }
    merged, changed = merge_header(existing, byrne_fresh(), now=NOW)

    assert changed
    assert merged["deck"] == "User edited"
    assert merged["comicVineId"] == 1002
    assert merged["roles"] == ["[[Penciler]]", "[[Inker]]"]
    assert merged["credits"] == [
        "[[Penciler]] on [[Uncanny X-Men 141]]",
        "[[Inker]] on [[Uncanny X-Men 141]]",
    ]
    assert merged["tags"] == ["comic-creator", "favorite"]
    assert merged["created"] == EARLIER
    assert merged["modified"] == NOW
    assert list(merged)[-1] == "myRating"
    assert existing["roles"] == ["[[Penciler]]"]


def test_merge_without_changes_keeps_modified() -> None:
    first = new_header(byrne_fresh(), now=EARLIER)
    merged, changed = merge_header(first, byrne_fresh(), now=NOW)
    assert not changed
    assert merged == first


def test_merge_fills_empty_scalars() -> None:
    existing = {"entityType": "ComicRole", "name": "Penciler", "subConceptOf": "", "created": EARLIER, "modified": EARLIER}
    merged, changed = merge_header(existing, RoleHeader(name="Penciler", sub_concept_of="[[Artist]]"), now=NOW)
    assert changed
    assert merged["subConceptOf"] == "[[Artist]]"
    assert merged["modified"] == NOW


def test_merge_sets_missing_modified() -> None:
    existing = {"entityType": "ComicRole", "name": "Writer", "created": EARLIER}
    merged, changed = merge_header(existing, RoleHeader(name="Writer"), now=NOW)
    assert changed
    assert merged["modified"] == NOW


def test_issue_header_reading_tracker_placeholder() -> None:
    tracked = IssueHeader(title="X #1", pages=22, current_page=0, percent_complete=0, type="comic").to_header()
    assert "lastRead" in tracked
    assert tracked["lastRead"] is None
    assert list(tracked)[:7] == ["entityType", "title", "pages", "currentPage", "percentComplete", "lastRead", "type"]

    untracked = IssueHeader(title="X #1").to_header()
    assert "lastRead" not in untracked
    assert "pages" not in untracked


def test_issue_header_section_comments() -> None:
    header = IssueHeader(
        title="X #1",
        volume="[[X]]",
        inker=["[[John Byrne]]"],
        written_by=["[[Chris Claremont]]"],
        features=["[[Wolverine]]"],
    ).to_header()
    assert IssueHeader.comments_for(header) == {
        "volume": "Comic Metadata",
        "inker": "Creators",
        "features": "Characters",
    }
