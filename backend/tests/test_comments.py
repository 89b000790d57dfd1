"""
Tests for comment threads: replies attach to the root comment, notifications
fan out to the parent and post authors, and deletes keep the thread
consistent (MongoDB replaced by the memory store).
"""

import pytest
from beanie import PydanticObjectId as OID
from pymongo.results import DeleteResult

from app.constants import ContentType, NotificationType, PostCategory
from app.models import Comment, Post
from app.schemas import CommentCreate
from app.services import comment_service


class FindOne:
    def __init__(self, store, query):
        self.store = store
        self.query = query

    async def update(self, update):
        return await self.store.find_one_and_update(Comment, self.query, update)


class FindMany:
    def __init__(self, store, query, deletes):
        self.store = store
        self.query = query
        self.deletes = deletes

    async def delete(self):
        self.deletes.append(self.query)
        matched = [
            doc_id for doc_id, row in self.store.rows.items()
            if isinstance(row, Comment) and all(getattr(row, k) == v for k, v in self.query.items())
        ]
        for doc_id in matched:
            self.store.rows.pop(doc_id)
        return DeleteResult({"n": len(matched)}, acknowledged=True)


@pytest.fixture
def comment_db(monkeypatch, memory_store):
    """Serve Comment/Post lookups and bulk queries from the memory store.

    Returns the list of filters passed to bulk deletes.
    """
    deletes = []

    def getter(model):
        async def fake_get(document_id, *args, **kwargs):
            row = memory_store.rows.get(document_id)
            return memory_store.load(document_id) if isinstance(row, model) else None

        return staticmethod(fake_get)

    monkeypatch.setattr(Comment, "get", getter(Comment))
    monkeypatch.setattr(Post, "get", getter(Post))
    monkeypatch.setattr(Comment, "find_one", staticmethod(lambda query: FindOne(memory_store, query)))
    monkeypatch.setattr(Comment, "find", staticmethod(lambda query: FindMany(memory_store, query, deletes)))
    return deletes


@pytest.fixture
def sent(monkeypatch):
    notifications = []

    async def fake_notify(emitter, **kwargs):
        notifications.append(kwargs)

    monkeypatch.setattr(comment_service, "notify", fake_notify)
    return notifications


def build_comment(post: Post, author_id, parent=None) -> Comment:
    return Comment.model_construct(
        id=OID(),
        post_or_blog=post.id,
        post_type=ContentType.POST,
        author_id=author_id,
        content="Same here",
        is_anonymous=False,
        parent_comment=parent.id if parent else None,
        replies=[],
        likes=[],
        dislikes=[],
        reports=[],
        is_approved=True,
    )


@pytest.fixture
def thread(memory_store, comment_db, make_user):
    """A post with a root comment that already has one reply."""
    post_author, root_author, reply_author = make_user(), make_user(), make_user()
    post = Post.model_construct(
        id=OID(),
        author_id=post_author.id,
        title="Living with asthma",
        content="What helped me most",
        category=PostCategory.ASTHMA,
        likes=[],
        dislikes=[],
        reports=[],
    )
    root = build_comment(post, root_author.id)
    first = build_comment(post, reply_author.id, parent=root)
    root.replies = [first.id]
    memory_store.track(post, root, first)
    return post, root, first


async def test_reply_to_a_reply_attaches_to_the_root(thread, make_user, memory_store, sent):
    post, root, first = thread
    reply = await comment_service.reply_to_comment(
        comment_id=str(first.id), author=make_user(), content="Me too"
    )

    assert reply.parent_comment == root.id
    assert reply.post_or_blog == post.id
    assert memory_store.rows[root.id].replies == [first.id, reply.id]
    assert memory_store.rows[first.id].replies == []
    assert {"$addToSet": {"replies": reply.id}} in memory_store.updates


async def test_reply_notifies_parent_author_and_post_author(thread, make_user, sent):
    post, root, first = thread
    replier = make_user()
    reply = await comment_service.reply_to_comment(
        comment_id=str(first.id), author=replier, content="Me too"
    )

    assert [(n["type"], n["recipient"]) for n in sent] == [
        (NotificationType.REPLY_COMMENT, first.author_id),
        (NotificationType.COMMENT_POST, post.author_id),
    ]
    assert all(n["comment"] == reply.id and n["sender"] == replier.id for n in sent)
    assert sent[1]["post"] == post.id


async def test_post_author_as_parent_gets_one_notification(thread, make_user, memory_store, sent):
    post, root, first = thread
    own_root = memory_store.track(build_comment(post, post.author_id))

    await comment_service.reply_to_comment(
        comment_id=str(own_root.id), author=make_user(), content="Thanks"
    )

    assert [(n["type"], n["recipient"]) for n in sent] == [
        (NotificationType.REPLY_COMMENT, post.author_id),
    ]


async def test_deleting_a_root_removes_its_replies(thread, make_user, memory_store, comment_db, sent):
    post, root, first = thread
    await comment_service.reply_to_comment(comment_id=str(first.id), author=make_user(), content="Me too")

    removed = await comment_service.delete_comment(
        comment_id=str(root.id), user=make_user(id=root.author_id)
    )

    assert removed == 3
    assert comment_db == [{"parent_comment": root.id}]
    assert not any(isinstance(row, Comment) for row in memory_store.rows.values())


async def test_deleting_a_reply_pulls_it_from_the_root(thread, make_user, memory_store, comment_db):
    post, root, first = thread

    removed = await comment_service.delete_comment(
        comment_id=str(first.id), user=make_user(id=first.author_id)
    )

    assert removed == 1
    assert {"$pull": {"replies": first.id}} in memory_store.updates
    assert memory_store.rows[root.id].replies == []
    assert first.id not in memory_store.rows
    assert comment_db == [{"parent_comment": first.id}]


async def test_top_level_comment_notifies_the_post_author(thread, make_user, memory_store, sent):
    post, root, first = thread
    author = make_user()
    comment = await comment_service.create_comment(
        author=author,
        data=CommentCreate(post_or_blog=str(post.id), content="Great tips"),
    )

    assert comment.parent_comment is None
    assert comment.id in memory_store.rows
    assert len(sent) == 1
    assert sent[0]["type"] == NotificationType.COMMENT_POST
    assert sent[0]["recipient"] == post.author_id
    assert sent[0]["comment"] == comment.id
