import pytest
from sqlalchemy import func, select

from betre.core.exceptions import InvalidArgument, NotFound
from betre.core.roles import NotificationType
from betre.models.notification import Notification
from betre.schemas.post import PostCreate
from betre.services import feed_service, graph_service


async def _notifications(db, user_id, kind: NotificationType) -> int:
    return await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.type == kind.value,
        )
    )


@pytest.mark.asyncio
async def test_follow_then_unfollow_restores_edge_state(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")

    assert await graph_service.follow(db_session, alice.id, bob.id) is True
    assert await graph_service.is_following(db_session, alice.id, bob.id)
    assert await graph_service.count_followers(db_session, bob.id) == 1
    assert await graph_service.count_following(db_session, alice.id) == 1

    assert await graph_service.unfollow(db_session, alice.id, bob.id) is True
    assert not await graph_service.is_following(db_session, alice.id, bob.id)
    assert await graph_service.count_followers(db_session, bob.id) == 0
    assert await graph_service.count_following(db_session, alice.id) == 0


@pytest.mark.asyncio
async def test_follow_is_idempotent(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")

    assert await graph_service.follow(db_session, alice.id, bob.id) is True
    assert await graph_service.follow(db_session, alice.id, bob.id) is False

    assert await graph_service.count_followers(db_session, bob.id) == 1
    assert await _notifications(db_session, bob.id, NotificationType.FOLLOW) == 1


@pytest.mark.asyncio
async def test_unfollow_without_edge_changes_nothing(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")

    assert await graph_service.unfollow(db_session, alice.id, bob.id) is False
    assert await graph_service.count_followers(db_session, bob.id) == 0
    assert await graph_service.count_following(db_session, alice.id) == 0
    assert await _notifications(db_session, bob.id, NotificationType.UNFOLLOW) == 0


@pytest.mark.asyncio
async def test_unfollow_notifies_followee(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    await graph_service.follow(db_session, alice.id, bob.id)
    await graph_service.unfollow(db_session, alice.id, bob.id)

    assert await _notifications(db_session, bob.id, NotificationType.UNFOLLOW) == 1


@pytest.mark.asyncio
async def test_cannot_follow_self(db_session, make_user) -> None:
    alice = await make_user("alice")
    with pytest.raises(InvalidArgument):
        await graph_service.follow(db_session, alice.id, alice.id)


@pytest.mark.asyncio
async def test_follow_unknown_user(db_session, make_user) -> None:
    from uuid import uuid4

    alice = await make_user("alice")
    with pytest.raises(NotFound):
        await graph_service.follow(db_session, alice.id, uuid4())
    with pytest.raises(NotFound):
        await graph_service.count_followers(db_session, uuid4())


@pytest.mark.asyncio
async def test_follow_backfills_and_unfollow_clears_feed(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await feed_service.create_post(db_session, bob.id, PostCreate(content="hello from bob"))

    assert await feed_service.get_feed_posts(db_session, alice.id) == []

    await graph_service.follow(db_session, alice.id, bob.id)
    feed = await feed_service.get_feed_posts(db_session, alice.id)
    assert [p.id for p in feed] == [post.id]

    await graph_service.unfollow(db_session, alice.id, bob.id)
    assert await feed_service.get_feed_posts(db_session, alice.id) == []
    # The author keeps their own post in their feed.
    assert [p.id for p in await feed_service.get_feed_posts(db_session, bob.id)] == [post.id]


@pytest.mark.asyncio
async def test_list_followers_and_following(db_session, make_user) -> None:
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    await graph_service.follow(db_session, alice.id, carol.id)
    await graph_service.follow(db_session, bob.id, carol.id)

    followers = await graph_service.list_followers(db_session, carol.id)
    assert {u.username for u in followers} == {"alice", "bob"}
    following = await graph_service.list_following(db_session, alice.id)
    assert [u.username for u in following] == ["carol"]
    assert await graph_service.get_following_ids(db_session, alice.id, [bob.id, carol.id]) == {carol.id}
