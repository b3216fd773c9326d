import pytest
from httpx import AsyncClient


async def _post(client: AsyncClient, author: dict, content: str, **extra) -> dict:
    res = await client.post("/posts", json={"content": content, **extra}, headers=author["headers"])
    assert res.status_code == 201, res.text
    return res.json()


async def _notifications(client: AsyncClient, member: dict, **params) -> dict:
    res = await client.get("/notifications", params=params, headers=member["headers"])
    assert res.status_code == 200, res.text
    return res.json()


@pytest.mark.asyncio
async def test_family_posts_are_visible_to_relatives_only(client: AsyncClient, register, invite_member) -> None:
    owner = await register("posts-owner@example.com", name="Olive")
    relative = await invite_member(owner, "posts-relative@example.com", name="Rory")
    outsider = await register("posts-outsider@example.com", name="Otto")

    family_post = await _post(client, owner, "Reunion next month", family_id=owner["family_id"])
    assert family_post["visibility"] == "FAMILY"
    assert family_post["author"]["name"] == "Olive"
    assert family_post["likes_count"] == 0

    relative_view = await client.get(f"/posts/{family_post['id']}", headers=relative["headers"])
    assert relative_view.status_code == 200
    outsider_view = await client.get(f"/posts/{family_post['id']}", headers=outsider["headers"])
    assert outsider_view.status_code == 403

    public_post = await _post(client, owner, "Hello world", visibility="PUBLIC")
    outsider_feed = (await client.get("/posts", headers=outsider["headers"])).json()
    assert [post["id"] for post in outsider_feed["posts"]] == [public_post["id"]]

    relative_feed = (await client.get("/posts", headers=relative["headers"])).json()
    assert {post["id"] for post in relative_feed["posts"]} == {family_post["id"], public_post["id"]}

    filtered = (
        await client.get("/posts", params={"visibility": "PUBLIC"}, headers=relative["headers"])
    ).json()
    assert filtered["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_posts_outside_own_family_are_rejected(client: AsyncClient, register) -> None:
    owner = await register("posts-own@example.com")
    other = await register("posts-other@example.com")

    res = await client.post(
        "/posts",
        json={"content": "Sneaky", "family_id": other["family_id"]},
        headers=owner["headers"],
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_post_pagination(client: AsyncClient, register) -> None:
    owner = await register("posts-pages@example.com")
    for index in range(3):
        await _post(client, owner, f"Post {index}")

    first = (await client.get("/posts", params={"limit": 2}, headers=owner["headers"])).json()
    assert len(first["posts"]) == 2
    assert first["pagination"] == {"current": 1, "limit": 2, "total": 3, "pages": 2}

    second = (await client.get("/posts", params={"limit": 2, "page": 2}, headers=owner["headers"])).json()
    assert len(second["posts"]) == 1


@pytest.mark.asyncio
async def test_only_authors_edit_and_delete_posts(client: AsyncClient, register, invite_member) -> None:
    owner = await register("posts-edit@example.com")
    relative = await invite_member(owner, "posts-edit-relative@example.com")
    post = await _post(client, owner, "First draft")

    denied = await client.put(f"/posts/{post['id']}", json={"content": "Hijacked"}, headers=relative["headers"])
    assert denied.status_code == 403

    edited = await client.put(
        f"/posts/{post['id']}",
        json={"content": "Final version", "visibility": "PUBLIC"},
        headers=owner["headers"],
    )
    assert edited.status_code == 200
    assert edited.json()["content"] == "Final version"
    assert edited.json()["visibility"] == "PUBLIC"

    assert (await client.delete(f"/posts/{post['id']}", headers=relative["headers"])).status_code == 403
    deleted = await client.delete(f"/posts/{post['id']}", headers=owner["headers"])
    assert deleted.json()["message"] == "Post deleted successfully"
    assert (await client.get(f"/posts/{post['id']}", headers=owner["headers"])).status_code == 404


@pytest.mark.asyncio
async def test_likes_toggle(client: AsyncClient, register, invite_member) -> None:
    owner = await register("posts-likes@example.com")
    relative = await invite_member(owner, "posts-likes-relative@example.com")
    post = await _post(client, owner, "Like me")

    liked = await client.post(f"/posts/{post['id']}/like", headers=relative["headers"])
    assert liked.json() == {"liked": True, "message": "Post liked"}
    view = (await client.get(f"/posts/{post['id']}", headers=relative["headers"])).json()
    assert view["likes_count"] == 1
    assert view["is_liked_by_current_user"] is True

    unliked = await client.post(f"/posts/{post['id']}/like", headers=relative["headers"])
    assert unliked.json() == {"liked": False, "message": "Post unliked"}
    view = (await client.get(f"/posts/{post['id']}", headers=owner["headers"])).json()
    assert view["likes_count"] == 0


@pytest.mark.asyncio
async def test_comment_threads_stay_two_levels_deep(client: AsyncClient, register, invite_member) -> None:
    owner = await register("comments-owner@example.com")
    relative = await invite_member(owner, "comments-relative@example.com")
    post = await _post(client, owner, "Discuss")

    top = (
        await client.post(f"/posts/{post['id']}/comments", json={"content": "Top"}, headers=relative["headers"])
    ).json()
    reply = (
        await client.post(
            f"/posts/{post['id']}/comments",
            json={"content": "Reply", "parent_comment_id": top["id"]},
            headers=owner["headers"],
        )
    ).json()
    nested = (
        await client.post(
            f"/posts/{post['id']}/comments",
            json={"content": "Reply to reply", "parent_comment_id": reply["id"]},
            headers=relative["headers"],
        )
    ).json()
    assert nested["parent_comment_id"] == top["id"]

    thread = (await client.get(f"/posts/{post['id']}/comments", headers=owner["headers"])).json()
    assert len(thread) == 1
    assert thread[0]["replies_count"] == 2
    assert [item["content"] for item in thread[0]["replies"]] == ["Reply", "Reply to reply"]

    flat = (
        await client.get(
            f"/posts/{post['id']}/comments",
            params={"include_replies": "false"},
            headers=owner["headers"],
        )
    ).json()
    assert flat[0]["replies"] == []

    edit_denied = await client.put(f"/comments/{top['id']}", json={"content": "x"}, headers=owner["headers"])
    assert edit_denied.status_code == 403
    edited = await client.put(f"/comments/{top['id']}", json={"content": "Top (edited)"}, headers=relative["headers"])
    assert edited.json()["content"] == "Top (edited)"

    liked = await client.post(f"/comments/{top['id']}/like", headers=owner["headers"])
    assert liked.json()["liked"] is True

    deleted = await client.delete(f"/comments/{top['id']}", headers=relative["headers"])
    assert deleted.json()["message"] == "Comment deleted successfully"
    assert (await client.get(f"/posts/{post['id']}/comments", headers=owner["headers"])).json() == []
    view = (await client.get(f"/posts/{post['id']}", headers=owner["headers"])).json()
    assert view["comments_count"] == 0


@pytest.mark.asyncio
async def test_reply_to_comment_on_another_post_is_rejected(client: AsyncClient, register) -> None:
    owner = await register("comments-cross@example.com")
    first = await _post(client, owner, "One")
    second = await _post(client, owner, "Two")
    comment = (
        await client.post(f"/posts/{first['id']}/comments", json={"content": "Hi"}, headers=owner["headers"])
    ).json()

    res = await client.post(
        f"/posts/{second['id']}/comments",
        json={"content": "Wrong thread", "parent_comment_id": comment["id"]},
        headers=owner["headers"],
    )
    assert res.status_code == 404
    assert res.json()["detail"] == "Parent comment not found"


@pytest.mark.asyncio
async def test_notifications_follow_social_activity(client: AsyncClient, register, invite_member) -> None:
    owner = await register("notify-owner@example.com", name="Olive")
    relative = await invite_member(owner, "notify-relative@example.com", name="Rory")

    post = await _post(client, owner, "Big news", family_id=owner["family_id"])
    relative_inbox = await _notifications(client, relative)
    assert [item["type"] for item in relative_inbox["notifications"]] == ["NEW_POST"]
    assert relative_inbox["notifications"][0]["related_member"]["name"] == "Olive"
    assert relative_inbox["notifications"][0]["related_post"]["content"] == "Big news"
    assert (await _notifications(client, owner))["pagination"]["total"] == 0

    await client.post(f"/posts/{post['id']}/like", headers=relative["headers"])
    comment = (
        await client.post(f"/posts/{post['id']}/comments", json={"content": "Congrats"}, headers=relative["headers"])
    ).json()
    await client.post(f"/comments/{comment['id']}/like", headers=owner["headers"])

    relative_likes = await _notifications(client, relative, type="COMMENT_LIKE")
    assert relative_likes["pagination"]["total"] == 1

    unread = await client.get("/notifications/unread-count", headers=owner["headers"])
    assert unread.json() == {"unread_count": 2}

    like_notification = (await _notifications(client, owner, type="POST_LIKE"))["notifications"][0]
    assert like_notification["message"] == "liked your post"
    marked = await client.put(
        f"/notifications/{like_notification['id']}/read",
        json={"is_read": True},
        headers=owner["headers"],
    )
    assert marked.json()["is_read"] is True
    assert (await _notifications(client, owner, is_read="false"))["pagination"]["total"] == 1

    mark_all = await client.put("/notifications/mark-all-read", headers=owner["headers"])
    assert mark_all.json() == {"message": "Marked 1 notifications as read", "count": 1}

    foreign = await client.delete(f"/notifications/{like_notification['id']}", headers=relative["headers"])
    assert foreign.status_code == 404

    cleared = await client.delete("/notifications/read/clear", headers=owner["headers"])
    assert cleared.json() == {"message": "Deleted 2 read notifications", "count": 2}
    assert (await _notifications(client, owner))["notifications"] == []

    relative_first = (await _notifications(client, relative))["notifications"][0]
    removed = await client.delete(f"/notifications/{relative_first['id']}", headers=relative["headers"])
    assert removed.json()["message"] == "Notification deleted successfully"
    assert (await _notifications(client, relative))["pagination"]["total"] == 1
