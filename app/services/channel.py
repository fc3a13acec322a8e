"""Channel profile and watch history aggregation."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, exists, func, select
from sqlalchemy.orm import Session, aliased

from app.errors import NotFoundError
from app.models.subscription import Subscription
from app.models.user import User
from app.models.video import Video, WatchHistoryEntry


@dataclass
class ChannelProfile:
    username: str
    full_name: str
    email: str
    avatar_asset_id: str
    avatar_url: str
    cover_image_asset_id: str
    cover_image_url: str
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool


@dataclass
class VideoOwner:
    username: str
    full_name: str
    avatar_asset_id: str
    avatar_url: str


@dataclass
class WatchedVideo:
    id: int
    title: str
    description: str
    video_url: str
    thumbnail_url: str
    duration: float
    views: int
    created_at: datetime
    owner: VideoOwner


class ChannelService:
    """Read-only queries joining users, subscriptions and videos. Nothing is cached."""

    def get_channel_profile(self, db: Session, username: str, viewer_id: int) -> ChannelProfile:
        """Resolve a channel by username with subscription counts relative to the viewer."""
        if not username or not username.strip():
            raise NotFoundError("Channel does not exist")

        subscribers_count = (
            select(func.count(Subscription.id))
            .where(Subscription.channel_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        subscribed_to_count = (
            select(func.count(Subscription.id))
            .where(Subscription.subscriber_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        is_subscribed = (
            exists()
            .where(and_(Subscription.channel_id == User.id, Subscription.subscriber_id == viewer_id))
            .correlate(User)
        )

        row = (
            db.query(
                User,
                subscribers_count.label("subscribers_count"),
                subscribed_to_count.label("channels_subscribed_to_count"),
                is_subscribed.label("is_subscribed"),
            )
            .filter(User.username == username.strip().lower())
            .first()
        )
        if row is None:
            raise NotFoundError("Channel does not exist")

        user, subscribers, subscribed_to, subscribed = row
        return ChannelProfile(
            username=user.username,
            full_name=user.full_name,
            email=user.email,
            avatar_asset_id=user.avatar_asset_id,
            avatar_url=user.avatar_url,
            cover_image_asset_id=user.cover_image_asset_id,
            cover_image_url=user.cover_image_url,
            subscribers_count=subscribers or 0,
            channels_subscribed_to_count=subscribed_to or 0,
            is_subscribed=bool(subscribed),
        )

    def get_watch_history(self, db: Session, user_id: int) -> list[WatchedVideo]:
        """Resolve the user's watch history, in stored order, into videos with owner summaries."""
        owner = aliased(User)
        rows = (
            db.query(Video, owner)
            .join(WatchHistoryEntry, WatchHistoryEntry.video_id == Video.id)
            .join(owner, Video.owner_id == owner.id)
            .filter(WatchHistoryEntry.user_id == user_id)
            .order_by(WatchHistoryEntry.position)
            .all()
        )

        return [
            WatchedVideo(
                id=video.id,
                title=video.title,
                description=video.description,
                video_url=video.video_url,
                thumbnail_url=video.thumbnail_url,
                duration=video.duration,
                views=video.views,
                created_at=video.created_at,
                owner=VideoOwner(
                    username=video_owner.username,
                    full_name=video_owner.full_name,
                    avatar_asset_id=video_owner.avatar_asset_id,
                    avatar_url=video_owner.avatar_url,
                ),
            )
            for video, video_owner in rows
        ]


_channel_service: ChannelService | None = None


def get_channel_service() -> ChannelService:
    """Get singleton channel service instance."""
    global _channel_service
    if _channel_service is None:
        _channel_service = ChannelService()
    return _channel_service
