from app.db.models.database import Books
from app.services.shares.content_store import is_safe_path

PDF_BYTES = b"%PDF-1.4\n" + b"x" * 5000 + b"\n%%EOF"


async def add_book(session_factory, store, pdf: bytes | None = PDF_BYTES, **fields):
    pdf_path = None
    if pdf is not None:
        target = store.root / "books" / "pdfs" / "sample.pdf"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(pdf)
        pdf_path = "books/pdfs/sample.pdf"
    values = {
        "title": "Linear Algebra Done Right",
        "author": "Axler",
        "status": "published",
        "is_published": True,
        "pdf_path": pdf_path,
        **fields,
    }
    async with session_factory() as db:
        book = Books(**values)
        db.add(book)
        await db.commit()
        await db.refresh(book)
        return book


async def test_pdf_streams_with_protective_headers(
    client, session_factory, store, student_headers
):
    book = await add_book(session_factory, store)

    res = await client.get(f"/api/v1/secure-pdf/pdf/{book.id}", headers=student_headers)

    assert res.status_code == 200
    assert res.content == PDF_BYTES
    assert res.headers["content-type"] == "application/pdf"
    assert res.headers["content-disposition"] == 'inline; filename="linear-algebra-done-right.pdf"'
    assert "no-store" in res.headers["cache-control"]
    assert res.headers["x-frame-options"] == "DENY"
    assert res.headers["x-content-type-options"] == "nosniff"
    assert res.headers["content-length"] == str(len(PDF_BYTES))


async def test_admin_can_read_visible_pdf(client, session_factory, store, admin_headers):
    book = await add_book(session_factory, store)

    res = await client.get(f"/api/v1/secure-pdf/pdf/{book.id}", headers=admin_headers)

    assert res.status_code == 200


async def test_unpublished_book_is_404_for_every_role(
    client, session_factory, store, admin_headers, student_headers
):
    book = await add_book(session_factory, store, is_published=False)

    for headers in (admin_headers, student_headers):
        res = await client.get(f"/api/v1/secure-pdf/pdf/{book.id}", headers=headers)
        assert res.status_code == 404


async def test_draft_book_is_404(client, session_factory, store, student_headers):
    book = await add_book(session_factory, store, status="draft", is_published=True)

    res = await client.get(f"/api/v1/secure-pdf/pdf/{book.id}", headers=student_headers)

    assert res.status_code == 404


async def test_pdf_requires_a_token(client, session_factory, store):
    book = await add_book(session_factory, store)

    res = await client.get(f"/api/v1/secure-pdf/pdf/{book.id}")

    assert res.status_code == 401


async def test_missing_pdf_file_is_404_not_500(client, session_factory, store, student_headers):
    book = await add_book(session_factory, store, pdf=None)

    res = await client.get(f"/api/v1/secure-pdf/pdf/{book.id}", headers=student_headers)

    assert res.status_code == 404


async def test_path_outside_content_root_is_never_served(
    client, session_factory, store, student_headers, tmp_path
):
    secret = tmp_path / "secret.pdf"
    secret.write_bytes(PDF_BYTES)
    book = await add_book(session_factory, store, pdf=None, pdf_path="../secret.pdf")

    res = await client.get(f"/api/v1/secure-pdf/pdf/{book.id}", headers=student_headers)

    assert res.status_code == 404
    assert store.resolve("../secret.pdf") is None


def test_is_safe_path(tmp_path):
    assert is_safe_path(tmp_path, tmp_path / "books" / "a.pdf")
    assert not is_safe_path(tmp_path / "content", tmp_path / "content" / ".." / "x.pdf")
    assert not is_safe_path(tmp_path / "content", "/etc/passwd")


async def test_cover_is_public_and_cacheable(client, session_factory, store):
    target = store.root / "books" / "covers" / "c.png"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(b"\x89PNG cover")
    book = await add_book(session_factory, store, cover_image_path="books/covers/c.png")

    res = await client.get(f"/api/v1/secure-pdf/cover/{book.id}")

    assert res.status_code == 200
    assert res.content == b"\x89PNG cover"
    assert res.headers["content-type"] == "image/png"
    assert res.headers["cache-control"] == "public, max-age=3600"


async def test_cover_falls_back_to_placeholder(client, session_factory, store):
    book = await add_book(session_factory, store)

    res = await client.get(f"/api/v1/secure-pdf/cover/{book.id}")

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("image/svg+xml")


async def test_cover_of_hidden_book_is_404(client, session_factory, store):
    book = await add_book(session_factory, store, status="archived", is_published=False)

    res = await client.get(f"/api/v1/secure-pdf/cover/{book.id}")

    assert res.status_code == 404
