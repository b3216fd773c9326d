from pathlib import Path

import pytest
from httpx import AsyncClient

from app.core.config import get_settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.asyncio
async def test_upload_list_get_and_delete(client: AsyncClient, register) -> None:
    owner = await register("upload-owner@example.com")

    res = await client.post(
        "/upload",
        files={"file": ("Photo.PNG", PNG_BYTES, "image/png")},
        headers=owner["headers"],
    )
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["message"] == "File uploaded successfully"
    stored = body["file"]
    assert stored["original_name"] == "Photo.PNG"
    assert stored["filename"].endswith(".png")
    assert stored["type"] == "IMAGE"
    assert stored["size"] == len(PNG_BYTES)
    assert stored["uploaded_by"] == owner["user_id"]
    assert body["url"].endswith(f"/uploads/{stored['filename']}")

    on_disk = Path(get_settings().upload_dir) / stored["filename"]
    assert on_disk.read_bytes() == PNG_BYTES

    listing = await client.get("/upload/user/files", headers=owner["headers"])
    assert [item["id"] for item in listing.json()] == [stored["id"]]

    fetched = await client.get(f"/upload/{stored['id']}", headers=owner["headers"])
    assert fetched.json()["mime_type"] == "image/png"

    deleted = await client.delete(f"/upload/{stored['id']}", headers=owner["headers"])
    assert deleted.json()["message"] == "File deleted successfully"
    assert not on_disk.exists()
    assert (await client.get(f"/upload/{stored['id']}", headers=owner["headers"])).status_code == 404


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_and_oversized_files(
    client: AsyncClient, register, monkeypatch: pytest.MonkeyPatch
) -> None:
    owner = await register("upload-rules@example.com")

    script = await client.post(
        "/upload",
        files={"file": ("run.sh", b"echo hi", "application/x-sh")},
        headers=owner["headers"],
    )
    assert script.status_code == 400
    assert script.json()["detail"] == "File type application/x-sh is not allowed"

    monkeypatch.setattr(get_settings(), "max_upload_mb", 0)
    too_big = await client.post(
        "/upload",
        files={"file": ("notes.txt", b"some text", "text/plain")},
        headers=owner["headers"],
    )
    assert too_big.status_code == 413


@pytest.mark.asyncio
async def test_only_the_uploader_can_delete(client: AsyncClient, register) -> None:
    owner = await register("upload-mine@example.com")
    other = await register("upload-theirs@example.com")
    res = await client.post(
        "/upload",
        files={"file": ("notes.txt", b"family notes", "text/plain")},
        headers=owner["headers"],
    )
    file_id = res.json()["file"]["id"]

    denied = await client.delete(f"/upload/{file_id}", headers=other["headers"])
    assert denied.status_code == 403
    assert (await client.get("/upload/user/files", headers=other["headers"])).json() == []


@pytest.mark.asyncio
async def test_profile_image_replaces_previous_one(client: AsyncClient, register) -> None:
    owner = await register("upload-avatar@example.com")

    first = await client.post(
        "/upload/profile-image",
        files={"file": ("me.png", PNG_BYTES, "image/png")},
        headers=owner["headers"],
    )
    assert first.status_code == 201
    assert first.json()["message"] == "Profile image uploaded successfully"
    second = await client.post(
        "/upload/profile-image",
        files={"file": ("me-again.png", PNG_BYTES, "image/png")},
        headers=owner["headers"],
    )
    second_file = second.json()["file"]

    profile = (await client.get("/members/profile", headers=owner["headers"])).json()
    assert profile["personal_info"]["profile_image"] == second_file["url"]
    assert profile["personal_info"]["profile_image_id"] == second_file["id"]

    files = (await client.get("/upload/user/files", headers=owner["headers"])).json()
    assert [item["id"] for item in files] == [second_file["id"]]

    not_image = await client.post(
        "/upload/profile-image",
        files={"file": ("cv.pdf", b"%PDF-1.4", "application/pdf")},
        headers=owner["headers"],
    )
    assert not_image.status_code == 400
    assert not_image.json()["detail"] == "Profile image must be an image file"


@pytest.mark.asyncio
async def test_stored_suffix_follows_declared_type_not_client_name(client: AsyncClient, register) -> None:
    owner = await register("upload-suffix@example.com")

    res = await client.post(
        "/upload",
        files={"file": ("x.html", PNG_BYTES, "image/png")},
        headers=owner["headers"],
    )
    assert res.status_code == 201, res.text
    stored = res.json()["file"]
    assert stored["original_name"] == "x.html"
    assert stored["filename"].endswith(".png")
    assert not stored["filename"].endswith(".html")
    assert res.json()["url"].endswith(".png")
