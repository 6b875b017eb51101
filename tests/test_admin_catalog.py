from datetime import datetime, timedelta, timezone

import pytest

from app.db.models.database import Courses
from app.services.admin.catalog import CatalogService

COURSES = "/api/v1/admin/courses"
BOOKS = "/api/v1/admin/books"
LIVE = "/api/v1/admin/live-classes"


async def create_course(client, headers, **overrides):
    payload = {"title": "Algebra I", "price": 0, "status": "draft", **overrides}
    res = await client.post(COURSES, json=payload, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def test_algebra_course_becomes_visible_once_published(
    client, admin_headers, student_headers
):
    course = await create_course(client, admin_headers)
    assert course["status"] == "draft"

    listing = await client.get("/api/v1/student/courses", headers=student_headers)
    assert listing.json()["data"]["items"] == []

    res = await client.put(
        f"{COURSES}/{course['id']}/status", json={"status": "published"}, headers=admin_headers
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "published"

    listing = await client.get("/api/v1/student/courses", headers=student_headers)
    items = listing.json()["data"]["items"]
    assert [(c["title"], c["status"]) for c in items] == [("Algebra I", "published")]


async def test_unknown_status_is_rejected_and_nothing_changes(client, admin_headers):
    course = await create_course(client, admin_headers)

    res = await client.put(
        f"{COURSES}/{course['id']}/status", json={"status": "retired"}, headers=admin_headers
    )

    assert res.status_code == 400
    assert res.json()["error_code"] == "VALIDATION_ERROR"
    assert "published" in res.json()["errors"]["status"]
    current = await client.get(f"{COURSES}/{course['id']}", headers=admin_headers)
    assert current.json()["data"]["status"] == "draft"


async def test_create_rejects_unknown_status_value(client, admin_headers):
    res = await client.post(
        COURSES, json={"title": "Geometry", "status": "retired"}, headers=admin_headers
    )

    assert res.status_code == 400


async def test_partial_update_keeps_other_fields(client, admin_headers):
    course = await create_course(client, admin_headers, instructor="Dr. Noether", level="beginner")

    res = await client.put(
        f"{COURSES}/{course['id']}", json={"price": 19.5}, headers=admin_headers
    )

    data = res.json()["data"]
    assert data["price"] == 19.5
    assert data["instructor"] == "Dr. Noether"
    assert data["level"] == "beginner"


async def test_update_rejects_null_for_required_field(client, admin_headers):
    course = await create_course(client, admin_headers)

    res = await client.put(f"{COURSES}/{course['id']}", json={"title": None}, headers=admin_headers)

    assert res.status_code == 400


async def test_list_filters_search_and_paginates(client, admin_headers):
    await create_course(client, admin_headers, title="Algebra I", category="algebra")
    await create_course(client, admin_headers, title="Algebra II", category="algebra")
    await create_course(client, admin_headers, title="Calculus", category="analysis")

    res = await client.get(
        COURSES, params={"search": "algebra", "size": 1, "page": 2}, headers=admin_headers
    )
    page = res.json()["data"]
    assert page["total_items"] == 2
    assert page["total_pages"] == 2
    assert page["has_previous"] is True
    assert page["has_next"] is False
    assert len(page["items"]) == 1

    res = await client.get(COURSES, params={"category": "analysis"}, headers=admin_headers)
    assert [c["title"] for c in res.json()["data"]["items"]] == ["Calculus"]


async def test_missing_course_is_404(client, admin_headers):
    res = await client.get(f"{COURSES}/4040", headers=admin_headers)

    assert res.status_code == 404
    assert res.json()["error_code"] == "NOT_FOUND"


async def test_delete_course_archives_it(client, admin_headers):
    course = await create_course(client, admin_headers)

    res = await client.delete(f"{COURSES}/{course['id']}", headers=admin_headers)

    assert res.status_code == 200
    assert res.json()["data"]["status"] == "archived"


async def test_book_status_drives_is_published(client, admin_headers):
    res = await client.post(
        BOOKS, json={"title": "Number Theory", "author": "Gauss"}, headers=admin_headers
    )
    book = res.json()["data"]
    assert book["is_published"] is False

    published = await client.put(
        f"{BOOKS}/{book['id']}/status", json={"status": "published"}, headers=admin_headers
    )
    assert published.json()["data"]["is_published"] is True

    hidden = await client.put(
        f"{BOOKS}/{book['id']}/status",
        json={"status": "published", "is_published": False},
        headers=admin_headers,
    )
    assert hidden.json()["data"]["status"] == "published"
    assert hidden.json()["data"]["is_published"] is False

    archived = await client.delete(f"{BOOKS}/{book['id']}", headers=admin_headers)
    assert archived.json()["data"]["status"] == "archived"
    assert archived.json()["data"]["is_published"] is False


async def test_book_created_as_published_is_visible_to_students(
    client, admin_headers, student_headers
):
    res = await client.post(
        BOOKS,
        json={"title": "Elements", "author": "Euclid", "status": "published"},
        headers=admin_headers,
    )
    book = res.json()["data"]
    assert book["is_published"] is True

    detail = await client.get(f"/api/v1/student/books/{book['id']}", headers=student_headers)
    assert detail.status_code == 200

    unlisted = await client.post(
        BOOKS,
        json={"title": "Errata", "author": "Euclid", "status": "published", "is_published": False},
        headers=admin_headers,
    )
    assert unlisted.json()["data"]["is_published"] is False


async def test_unknown_fields_on_admin_writes_are_rejected(client, admin_headers):
    course = await create_course(client, admin_headers)

    update = await client.put(
        f"{COURSES}/{course['id']}",
        json={"status": "bogus", "titel": "typo"},
        headers=admin_headers,
    )
    create = await client.post(
        BOOKS, json={"title": "Sets", "author": "Halmos", "pdf_path": "/etc/passwd"}, headers=admin_headers
    )

    assert update.status_code == 400
    assert update.json()["error_code"] == "VALIDATION_ERROR"
    assert {e["field"] for e in update.json()["errors"]} == {"status", "titel"}
    assert create.status_code == 400
    current = await client.get(f"{COURSES}/{course['id']}", headers=admin_headers)
    assert current.json()["data"]["status"] == "draft"
    assert current.json()["data"]["title"] == "Algebra I"


async def test_book_pdf_upload_checks_content(client, admin_headers, store):
    book = (
        await client.post(BOOKS, json={"title": "Topology", "author": "Munkres"}, headers=admin_headers)
    ).json()["data"]

    bad = await client.put(
        f"{BOOKS}/{book['id']}/pdf",
        files={"file": ("topology.pdf", b"not a pdf", "application/pdf")},
        headers=admin_headers,
    )
    assert bad.status_code == 400

    wrong_ext = await client.put(
        f"{BOOKS}/{book['id']}/pdf",
        files={"file": ("topology.exe", b"%PDF-1.4 data", "application/octet-stream")},
        headers=admin_headers,
    )
    assert wrong_ext.status_code == 400

    good = await client.put(
        f"{BOOKS}/{book['id']}/pdf",
        files={"file": ("topology.pdf", b"%PDF-1.4\n%content\n", "application/pdf")},
        headers=admin_headers,
    )
    assert good.status_code == 200
    pdf_path = good.json()["data"]["pdf_path"]
    assert pdf_path.startswith("books/pdfs/")
    assert store.resolve(pdf_path) is not None


async def test_replacing_cover_removes_previous_file(client, admin_headers, store):
    book = (
        await client.post(BOOKS, json={"title": "Analysis", "author": "Rudin"}, headers=admin_headers)
    ).json()["data"]

    first = await client.put(
        f"{BOOKS}/{book['id']}/cover",
        files={"file": ("cover.png", b"\x89PNG first", "image/png")},
        headers=admin_headers,
    )
    old_path = first.json()["data"]["cover_image_path"]
    second = await client.put(
        f"{BOOKS}/{book['id']}/cover",
        files={"file": ("cover.jpg", b"\xff\xd8 second", "image/jpeg")},
        headers=admin_headers,
    )

    assert second.status_code == 200
    assert store.resolve(old_path) is None
    assert store.resolve(second.json()["data"]["cover_image_path"]) is not None


async def test_live_class_create_normalises_schedule_and_slug(client, admin_headers):
    start = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    res = await client.post(
        LIVE,
        json={
            "title": "Proof Writing Workshop",
            "scheduled_at": start.isoformat(),
            "meeting_link": "https://meet.example.com/proofs",
        },
        headers=admin_headers,
    )

    assert res.status_code == 201
    data = res.json()["data"]
    assert data["slug"] == "proof-writing-workshop"
    assert data["scheduled_at"].startswith("2030-01-01T10:00:00")
    assert data["status"] == "upcoming"
    assert data["meeting_link"] == "https://meet.example.com/proofs"


async def test_live_class_rejects_content_status(client, admin_headers):
    res = await client.post(
        LIVE,
        json={
            "title": "Intro",
            "scheduled_at": "2030-01-01T10:00:00",
            "meeting_link": "https://meet.example.com/x",
        },
        headers=admin_headers,
    )
    live_class = res.json()["data"]

    bad = await client.put(
        f"{LIVE}/{live_class['id']}/status", json={"status": "published"}, headers=admin_headers
    )

    assert bad.status_code == 400


def test_catalog_service_needs_a_delete_policy():
    class NoDeletePolicy(CatalogService):
        model = Courses

    with pytest.raises(TypeError):
        NoDeletePolicy(db=None, store=None)
