import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from app.db.models.database import BookPurchases, Books, Courses, Enrollments, LiveClasses
from app.libs.formats.datetime import now as get_now
from app.services.user.course_enroll import CourseEnrolls


async def add(session_factory, obj):
    async with session_factory() as db:
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
        return obj


def live_class(**overrides):
    fields = {
        "title": "Limits Live",
        "slug": "limits-live",
        "scheduled_at": get_now() + timedelta(days=1),
        "meeting_link": "https://meet.example.com/limits",
        "max_students": 2,
        "status": "upcoming",
        **overrides,
    }
    return LiveClasses(**fields)


async def test_enrolling_twice_returns_the_same_enrollment(
    client, session_factory, student_headers
):
    course = await add(session_factory, Courses(title="Algebra I", price=0, status="published"))
    url = f"/api/v1/student/courses/{course.id}/enroll"

    first = await client.post(url, headers=student_headers)
    second = await client.post(url, headers=student_headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.json()["data"]["created"] is True
    assert second.json()["data"]["created"] is False
    assert second.json()["data"]["enrollment"]["id"] == first.json()["data"]["enrollment"]["id"]
    assert first.json()["data"]["enrollment"]["status"] == "active"

    mine = await client.get("/api/v1/student/enrollments", headers=student_headers)
    assert mine.json()["data"]["total_items"] == 1
    assert mine.json()["data"]["items"][0]["title"] == "Algebra I"


async def test_paid_course_enrollment_starts_pending(client, session_factory, student_headers):
    course = await add(session_factory, Courses(title="Calculus", price=49, status="published"))

    res = await client.post(f"/api/v1/student/courses/{course.id}/enroll", headers=student_headers)

    enrollment = res.json()["data"]["enrollment"]
    assert enrollment["status"] == "pending"
    assert enrollment["amount"] == 49


async def test_draft_course_cannot_be_seen_or_enrolled(client, session_factory, student_headers):
    course = await add(session_factory, Courses(title="Secret", status="draft"))

    detail = await client.get(f"/api/v1/student/courses/{course.id}", headers=student_headers)
    enroll = await client.post(
        f"/api/v1/student/courses/{course.id}/enroll", headers=student_headers
    )

    assert detail.status_code == 404
    assert enroll.status_code == 404


async def test_draft_book_is_hidden_from_students(client, session_factory, student_headers):
    draft = await add(session_factory, Books(title="Draft", author="A", status="draft"))
    unpublished = await add(
        session_factory,
        Books(title="Unlisted", author="B", status="published", is_published=False),
    )
    visible = await add(
        session_factory,
        Books(title="Visible", author="C", status="published", is_published=True),
    )

    listing = await client.get("/api/v1/student/books", headers=student_headers)
    titles = [b["title"] for b in listing.json()["data"]["items"]]
    assert titles == ["Visible"]
    assert "pdf_path" not in listing.json()["data"]["items"][0]

    for book in (draft, unpublished):
        res = await client.get(f"/api/v1/student/books/{book.id}", headers=student_headers)
        assert res.status_code == 404
        res = await client.post(
            f"/api/v1/student/books/{book.id}/purchase", headers=student_headers
        )
        assert res.status_code == 404

    detail = await client.get(f"/api/v1/student/books/{visible.id}", headers=student_headers)
    assert detail.json()["data"]["cover_url"].endswith(f"/secure-pdf/cover/{visible.id}")


async def test_book_purchase_is_idempotent(client, session_factory, student_headers):
    book = await add(
        session_factory,
        Books(title="Proofs", author="Velleman", price=0, status="published", is_published=True),
    )
    url = f"/api/v1/student/books/{book.id}/purchase"

    first = await client.post(url, headers=student_headers)
    second = await client.post(url, headers=student_headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.json()["data"]["purchase"]["status"] == "completed"
    assert second.json()["data"]["purchase"]["id"] == first.json()["data"]["purchase"]["id"]

    detail = await client.get(f"/api/v1/student/books/{book.id}", headers=student_headers)
    assert detail.json()["data"]["purchase_status"] == "completed"


async def test_live_class_capacity_is_enforced(
    client, session_factory, make_user, headers_for
):
    lc = await add(session_factory, live_class(max_students=1))
    first = await make_user("one@example.com")
    second = await make_user("two@example.com")
    url = f"/api/v1/student/live-classes/{lc.id}/enroll"

    ok_res = await client.post(url, headers=await headers_for(first))
    full_res = await client.post(url, headers=await headers_for(second))

    assert ok_res.status_code == 201
    assert full_res.status_code == 409
    assert full_res.json()["error_code"] == "LIVE_CLASS_FULL"


async def test_ended_live_class_rejects_enrollment(client, session_factory, student_headers):
    lc = await add(session_factory, live_class(status="ended"))

    res = await client.post(
        f"/api/v1/student/live-classes/{lc.id}/enroll", headers=student_headers
    )

    assert res.status_code == 409
    assert res.json()["error_code"] == "LIVE_CLASS_CLOSED"


async def test_cancelled_live_class_is_not_found(client, session_factory, student_headers):
    lc = await add(session_factory, live_class(status="cancelled"))

    detail = await client.get(f"/api/v1/student/live-classes/{lc.id}", headers=student_headers)
    enroll = await client.post(
        f"/api/v1/student/live-classes/{lc.id}/enroll", headers=student_headers
    )

    assert detail.status_code == 404
    assert enroll.status_code == 404


async def test_meeting_link_only_for_active_enrollees(client, session_factory, student_headers):
    lc = await add(session_factory, live_class())
    url = f"/api/v1/student/live-classes/{lc.id}"

    before = await client.get(url, headers=student_headers)
    assert before.json()["data"]["meeting_link"] is None
    assert before.json()["data"]["seats_left"] == 2

    await client.post(f"{url}/enroll", headers=student_headers)
    after = await client.get(url, headers=student_headers)

    assert after.json()["data"]["meeting_link"] == "https://meet.example.com/limits"
    assert after.json()["data"]["enrollment_status"] == "active"
    assert after.json()["data"]["seats_left"] == 1

    listing = await client.get("/api/v1/student/live-classes", headers=student_headers)
    assert "meeting_link" not in listing.json()["data"]["items"][0]


async def test_dashboard_counts(client, session_factory, student_headers):
    course = await add(session_factory, Courses(title="Algebra I", price=0, status="published"))
    lc = await add(session_factory, live_class())
    book = await add(
        session_factory,
        Books(title="Sets", author="Halmos", price=0, status="published", is_published=True),
    )
    await client.post(f"/api/v1/student/courses/{course.id}/enroll", headers=student_headers)
    await client.post(f"/api/v1/student/live-classes/{lc.id}/enroll", headers=student_headers)
    await client.post(f"/api/v1/student/books/{book.id}/purchase", headers=student_headers)

    res = await client.get("/api/v1/student/dashboard", headers=student_headers)

    data = res.json()["data"]
    assert data["enrolled_courses"] == 1
    assert data["enrolled_live_classes"] == 1
    assert data["purchased_books"] == 1
    assert data["unread_notifications"] == 3

    only_courses = await client.get(
        "/api/v1/student/enrollments", params={"kind": "course"}, headers=student_headers
    )
    assert only_courses.json()["data"]["total_items"] == 1


async def count_rows(session_factory, model, **where):
    async with session_factory() as db:
        stmt = select(func.count()).select_from(model)
        for column, value in where.items():
            stmt = stmt.where(getattr(model, column) == value)
        return await db.scalar(stmt)


async def test_concurrent_enrolls_leave_one_enrollment(
    client, session_factory, student, student_headers
):
    course = await add(session_factory, Courses(title="Algebra I", price=0, status="published"))
    url = f"/api/v1/student/courses/{course.id}/enroll"

    responses = await asyncio.gather(*(client.post(url, headers=student_headers) for _ in range(5)))

    codes = sorted(r.status_code for r in responses)
    assert set(codes) <= {200, 201}
    assert codes.count(201) == 1
    ids = {r.json()["data"]["enrollment"]["id"] for r in responses}
    assert len(ids) == 1
    assert await count_rows(session_factory, Enrollments, user_id=student.id, course_id=course.id) == 1


async def test_concurrent_purchases_leave_one_purchase(
    client, session_factory, student, student_headers
):
    book = await add(
        session_factory,
        Books(title="Proofs", author="Velleman", price=0, status="published", is_published=True),
    )
    url = f"/api/v1/student/books/{book.id}/purchase"

    responses = await asyncio.gather(*(client.post(url, headers=student_headers) for _ in range(5)))

    codes = sorted(r.status_code for r in responses)
    assert set(codes) <= {200, 201}
    assert codes.count(201) == 1
    assert await count_rows(session_factory, BookPurchases, user_id=student.id, book_id=book.id) == 1


async def test_enroll_losing_the_unique_index_returns_existing_row(
    client, session_factory, student, student_headers, monkeypatch
):
    course = await add(session_factory, Courses(title="Algebra I", price=0, status="published"))
    url = f"/api/v1/student/courses/{course.id}/enroll"
    first = await client.post(url, headers=student_headers)

    lookups = []
    original = CourseEnrolls._open_enrollment

    async def stale_first_lookup(self, user_id, **target):
        # the first check misses the row a parallel request just committed
        lookups.append(target)
        if len(lookups) == 1:
            return None
        return await original(self, user_id, **target)

    monkeypatch.setattr(CourseEnrolls, "_open_enrollment", stale_first_lookup)
    second = await client.post(url, headers=student_headers)

    assert second.status_code == 200
    assert second.json()["data"]["created"] is False
    assert second.json()["data"]["enrollment"]["id"] == first.json()["data"]["enrollment"]["id"]
    assert len(lookups) == 2
    assert await count_rows(session_factory, Enrollments, user_id=student.id) == 1


async def test_purchase_losing_the_unique_index_returns_existing_row(
    client, session_factory, student, student_headers, monkeypatch
):
    book = await add(
        session_factory,
        Books(title="Sets", author="Halmos", price=0, status="published", is_published=True),
    )
    url = f"/api/v1/student/books/{book.id}/purchase"
    first = await client.post(url, headers=student_headers)

    lookups = []
    original = CourseEnrolls._open_purchase

    async def stale_first_lookup(self, user_id, book_id):
        lookups.append(book_id)
        if len(lookups) == 1:
            return None
        return await original(self, user_id, book_id)

    monkeypatch.setattr(CourseEnrolls, "_open_purchase", stale_first_lookup)
    second = await client.post(url, headers=student_headers)

    assert second.status_code == 200
    assert second.json()["data"]["created"] is False
    assert second.json()["data"]["purchase"]["id"] == first.json()["data"]["purchase"]["id"]
    assert await count_rows(session_factory, BookPurchases, user_id=student.id) == 1
