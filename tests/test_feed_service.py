import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from betre.core.exceptions import Forbidden, InvalidArgument, NotFound
from betre.core.roles import NotificationType
from betre.models.comment import Comment
from betre.models.engagement import FeedEntry, Like
from betre.models.notification import Notification
from betre.models.post import Post
from betre.schemas.post import PostCreate, PostUpdate
from betre.services import feed_service, graph_service


async def _count(db, query) -> int:
    return await db.scalar(query)


async def _likes_count(db, post_id) -> int:
    return await db.scalar(select(Post.likes_count).where(Post.id == post_id))


async def _comments_count(db, post_id) -> int:
    return await db.scalar(select(Post.comments_count).where(Post.id == post_id))


@pytest.mark.asyncio
async def test_create_post_requires_text_or_image(db_session, make_user) -> None:
    alice = await make_user("alice")
    with pytest.raises(InvalidArgument):
        await feed_service.create_post(db_session, alice.id, PostCreate(content="   "))

    post = await feed_service.create_post(
        db_session, alice.id, PostCreate(image_url="https://cdn.example.com/a.jpg", location="Lisbon")
    )
    assert post.likes_count == 0
    assert post.comments_count == 0
    assert post.location == "Lisbon"


@pytest.mark.asyncio
async def test_create_post_fans_out_to_followers(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    await graph_service.follow(db_session, bob.id, alice.id)

    post = await feed_service.create_post(db_session, alice.id, PostCreate(content="first"))

    readers = set(
        (await db_session.execute(select(FeedEntry.user_id).where(FeedEntry.post_id == post.id))).scalars()
    )
    assert readers == {alice.id, bob.id}
    assert await feed_service.get_feed_posts(db_session, carol.id) == []


@pytest.mark.asyncio
async def test_feed_is_newest_first(db_session, make_user) -> None:
    alice = await make_user("alice")
    first = await feed_service.create_post(db_session, alice.id, PostCreate(content="one"))
    second = await feed_service.create_post(db_session, alice.id, PostCreate(content="two"))

    feed = await feed_service.get_feed_posts(db_session, alice.id)
    assert [p.id for p in feed] == [second.id, first.id]


@pytest.mark.asyncio
async def test_update_post_only_by_author(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await feed_service.create_post(db_session, alice.id, PostCreate(content="draft"))

    with pytest.raises(Forbidden):
        await feed_service.update_post(db_session, bob.id, post.id, PostUpdate(content="hijack"))
    with pytest.raises(InvalidArgument):
        await feed_service.update_post(db_session, alice.id, post.id, PostUpdate(content=""))

    updated = await feed_service.update_post(db_session, alice.id, post.id, PostUpdate(content="final"))
    assert updated.content == "final"
    assert updated.user.username == "alice"


@pytest.mark.asyncio
async def test_toggle_like_twice_restores_state(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await feed_service.create_post(db_session, alice.id, PostCreate(content="like me"))

    liked, count = await feed_service.toggle_like(db_session, bob.id, post.id)
    assert (liked, count) == (True, 1)
    assert await feed_service.get_liked_by(db_session, post.id) == {bob.id}

    liked, count = await feed_service.toggle_like(db_session, bob.id, post.id)
    assert (liked, count) == (False, 0)
    assert await feed_service.get_liked_by(db_session, post.id) == set()
    assert await _likes_count(db_session, post.id) == 0


@pytest.mark.asyncio
async def test_like_notifies_author_once_and_never_self(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await feed_service.create_post(db_session, alice.id, PostCreate(content="hi"))

    await feed_service.toggle_like(db_session, bob.id, post.id)
    await feed_service.toggle_like(db_session, bob.id, post.id)
    await feed_service.toggle_like(db_session, alice.id, post.id)

    likes = await _count(
        db_session,
        select(func.count(Notification.id)).where(Notification.type == NotificationType.LIKE.value),
    )
    assert likes == 1


@pytest.mark.asyncio
async def test_toggle_like_unknown_post(db_session, make_user) -> None:
    alice = await make_user("alice")
    with pytest.raises(NotFound):
        await feed_service.toggle_like(db_session, alice.id, uuid4())


@pytest.mark.asyncio
async def test_concurrent_likers_are_all_counted(session_factory, make_user) -> None:
    author = await make_user("author")
    likers = [await make_user(f"liker{i}") for i in range(8)]
    async with session_factory() as session:
        post = await feed_service.create_post(session, author.id, PostCreate(content="popular"))
        await session.commit()

    async def like(user_id):
        async with session_factory() as session:
            liked, _ = await feed_service.toggle_like(session, user_id, post.id)
            await session.commit()
            return liked

    results = await asyncio.gather(*(like(u.id) for u in likers))
    assert all(results)

    async with session_factory() as session:
        assert await _likes_count(session, post.id) == len(likers)
        assert len(await feed_service.get_liked_by(session, post.id)) == len(likers)


@pytest.mark.asyncio
async def test_comment_counter_and_notification(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await feed_service.create_post(db_session, alice.id, PostCreate(content="thoughts?"))

    with pytest.raises(InvalidArgument):
        await feed_service.add_comment(db_session, bob.id, post.id, "  ")
    with pytest.raises(NotFound):
        await feed_service.add_comment(db_session, bob.id, uuid4(), "hello")

    comment = await feed_service.add_comment(db_session, bob.id, post.id, "nice")
    await feed_service.add_comment(db_session, alice.id, post.id, "thanks")
    assert await _comments_count(db_session, post.id) == 2

    comments = await feed_service.list_comments(db_session, post.id)
    assert [c.content for c in comments] == ["nice", "thanks"]

    notified = await _count(
        db_session,
        select(func.count(Notification.id)).where(
            Notification.user_id == alice.id,
            Notification.type == NotificationType.COMMENT.value,
        ),
    )
    assert notified == 1

    with pytest.raises(Forbidden):
        await feed_service.delete_comment(db_session, alice.id, comment.id)
    await feed_service.delete_comment(db_session, bob.id, comment.id)
    assert await _comments_count(db_session, post.id) == 1
    assert await _count(
        db_session, select(func.count(Notification.id)).where(Notification.target_comment_id == comment.id)
    ) == 0


@pytest.mark.asyncio
async def test_delete_post_by_non_owner_is_forbidden(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await feed_service.create_post(db_session, alice.id, PostCreate(content="mine"))

    with pytest.raises(Forbidden):
        await feed_service.delete_post(db_session, bob.id, post.id)
    with pytest.raises(NotFound):
        await feed_service.delete_post(db_session, alice.id, uuid4())


@pytest.mark.asyncio
async def test_delete_post_cascades(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    await graph_service.follow(db_session, bob.id, alice.id)
    post = await feed_service.create_post(db_session, alice.id, PostCreate(content="short lived"))
    await feed_service.toggle_like(db_session, bob.id, post.id)
    await feed_service.add_comment(db_session, bob.id, post.id, "bye")

    await feed_service.delete_post(db_session, alice.id, post.id)

    assert await feed_service.get_user_posts(db_session, alice.id) == []
    assert await feed_service.get_feed_posts(db_session, bob.id) == []
    for model, column in (
        (Like, Like.post_id),
        (Comment, Comment.post_id),
        (FeedEntry, FeedEntry.post_id),
        (Notification, Notification.target_post_id),
    ):
        assert await _count(db_session, select(func.count()).select_from(model).where(column == post.id)) == 0
    with pytest.raises(NotFound):
        await feed_service.get_post(db_session, post.id)
