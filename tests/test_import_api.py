import json

import pytest
from httpx import AsyncClient

PASSWORD = "Passw0rd!"


def _family_file() -> tuple[str, bytes, str]:
    payload = {
        "name": "Imported Clan",
        "members": [
            {"name": "Grandpa Joe", "gender": "MALE", "familyRole": "HEAD"},
            {"name": "Grandma Sue", "gender": "FEMALE", "spouseNames": "Grandpa Joe"},
            {"name": "Young Tim", "parentNames": "Grandpa Joe, Grandma Sue"},
        ],
    }
    return ("clan.json", json.dumps(payload).encode(), "application/json")


@pytest.mark.asyncio
async def test_validate_reports_structure(client: AsyncClient, register) -> None:
    owner = await register("import-validate@example.com")

    ok_res = await client.post(
        "/import/validate",
        files={"file": _family_file()},
        headers=owner["headers"],
    )
    assert ok_res.status_code == 200
    assert ok_res.json() == {"success": True, "file_type": "json", "errors": [], "warnings": []}

    bad_res = await client.post(
        "/import/validate",
        files={"file": ("broken.json", b"{not json", "application/json")},
        headers=owner["headers"],
    )
    assert bad_res.json()["success"] is False
    assert bad_res.json()["errors"]

    missing_res = await client.post(
        "/import/validate",
        data={"family_id": owner["family_id"]},
        headers=owner["headers"],
    )
    assert missing_res.status_code == 400
    assert missing_res.json()["detail"] == "No file provided"


@pytest.mark.asyncio
async def test_import_into_existing_family_then_rollback(client: AsyncClient, register) -> None:
    owner = await register("import-owner@example.com", family_name="Host Family")

    start_res = await client.post(
        "/import/start",
        data={"family_id": owner["family_id"], "import_name": "Clan upload"},
        files={"file": _family_file()},
        headers=owner["headers"],
    )
    assert start_res.status_code == 200, start_res.text
    import_id = start_res.json()["import_id"]

    progress_res = await client.get(f"/import/progress/{import_id}", headers=owner["headers"])
    assert progress_res.status_code == 200
    progress = progress_res.json()["progress"]
    assert progress["status"] == "completed"
    assert progress["progress"] == 100
    assert progress["import_name"] == "Clan upload"
    assert progress["result"]["successful_imports"] == 3
    assert progress["result"]["family_id"] == owner["family_id"]

    members_res = await client.get(f"/members/family/{owner['family_id']}", headers=owner["headers"])
    names = sorted(member["name"] for member in members_res.json())
    assert names == ["Grandma Sue", "Grandpa Joe", "Test User", "Young Tim"]

    tree_res = await client.get(f"/tree/{owner['family_id']}/statistics", headers=owner["headers"])
    assert tree_res.json()["total_members"] == 4

    rollback_res = await client.delete(
        f"/import/rollback/{import_id}",
        params={"family_id": owner["family_id"]},
        headers=owner["headers"],
    )
    assert rollback_res.status_code == 200
    assert rollback_res.json()["message"] == "Import rolled back successfully"

    again_res = await client.delete(
        f"/import/rollback/{import_id}",
        params={"family_id": owner["family_id"]},
        headers=owner["headers"],
    )
    assert again_res.status_code == 400


@pytest.mark.asyncio
async def test_failed_import_reports_errors(client: AsyncClient, register) -> None:
    owner = await register("import-fail@example.com")
    rows = [{"gender": "MALE"}]

    start_res = await client.post(
        "/import/start",
        data={"family_id": owner["family_id"]},
        files={"file": ("nameless.json", json.dumps(rows).encode(), "application/json")},
        headers=owner["headers"],
    )
    import_id = start_res.json()["import_id"]

    progress = (await client.get(f"/import/progress/{import_id}", headers=owner["headers"])).json()["progress"]
    assert progress["status"] == "failed"
    assert progress["errors"][0]["message"] == "Member name is required"


@pytest.mark.asyncio
async def test_import_requires_add_members_permission(client: AsyncClient, register, invite_member) -> None:
    owner = await register("import-guard@example.com")
    member = await invite_member(owner, "import-member@example.com")

    res = await client.post(
        "/import/start",
        data={"family_id": owner["family_id"]},
        files={"file": _family_file()},
        headers=member["headers"],
    )
    assert res.status_code == 403

    progress_res = await client.get("/import/progress/unknown", headers=owner["headers"])
    assert progress_res.status_code == 404


@pytest.mark.asyncio
async def test_template_downloads(client: AsyncClient, register) -> None:
    owner = await register("import-templates@example.com")

    json_res = await client.get(
        "/import/template/json",
        params={"size": "small"},
        headers=owner["headers"],
    )
    assert json_res.status_code == 200
    assert json_res.headers["content-disposition"] == (
        'attachment; filename="family-import-template-small-with-sample-data.json"'
    )
    assert json.loads(json_res.content)

    excel_res = await client.get(
        "/import/template/excel",
        params={"sample_data": "false"},
        headers=owner["headers"],
    )
    assert excel_res.status_code == 200
    assert excel_res.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert excel_res.content[:2] == b"PK"
    assert "family-import-template-medium.xlsx" in excel_res.headers["content-disposition"]
