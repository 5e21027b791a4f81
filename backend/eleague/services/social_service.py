import logging

from eleague.extensions import db
from eleague.models.social import SocialPost

logger = logging.getLogger(__name__)


def list_social_posts(active_only=True):
    """Newest first. The public feed only shows active posts."""
    query = SocialPost.query
    if active_only:
        query = query.filter_by(active=True)
    return query.order_by(SocialPost.created_at.desc(), SocialPost.id.desc()).all()


def create_social_post(data, admin_id):
    post = SocialPost(
        title=data["title"],
        image_url=data["image_url"],
        post_url=data["post_url"],
        active=data.get("active", True),
        created_by_id=admin_id,
    )
    db.session.add(post)
    db.session.commit()
    logger.info("Social post %s created by admin %s", post.id, admin_id)
    return post, None


def update_social_post(post_id, data):
    post = db.session.get(SocialPost, post_id)
    if not post:
        return None, "Social post not found"

    for field in ("title", "image_url", "post_url", "active"):
        if field in data:
            setattr(post, field, data[field])

    db.session.commit()
    return post, None


def toggle_social_post(post_id):
    post = db.session.get(SocialPost, post_id)
    if not post:
        return None, "Social post not found"

    post.active = not post.active
    db.session.commit()
    return post, None


def delete_social_post(post_id):
    post = db.session.get(SocialPost, post_id)
    if not post:
        return None, "Social post not found"

    db.session.delete(post)
    db.session.commit()
    logger.info("Deleted social post %s", post_id)
    return post, None
