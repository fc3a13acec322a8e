"""Pydantic schemas for channel profile and watch history endpoints."""

from datetime import datetime

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from app.schemas.user import AssetResponse
from app.services.channel import ChannelProfile, WatchedVideo

CAMEL_CASE = {"alias_generator": to_camel, "populate_by_name": True}


class ChannelProfileResponse(BaseModel):
    username: str
    full_name: str
    email: str
    avatar: AssetResponse
    cover_image: AssetResponse
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool

    model_config = CAMEL_CASE

    @classmethod
    def from_profile(cls, profile: ChannelProfile) -> "ChannelProfileResponse":
        return cls(
            username=profile.username,
            full_name=profile.full_name,
            email=profile.email,
            avatar=AssetResponse(asset_id=profile.avatar_asset_id, url=profile.avatar_url),
            cover_image=AssetResponse(asset_id=profile.cover_image_asset_id, url=profile.cover_image_url),
            subscribers_count=profile.subscribers_count,
            channels_subscribed_to_count=profile.channels_subscribed_to_count,
            is_subscribed=profile.is_subscribed,
        )


class VideoOwnerResponse(BaseModel):
    username: str
    full_name: str
    avatar: AssetResponse

    model_config = CAMEL_CASE


class WatchedVideoResponse(BaseModel):
    id: int
    title: str
    description: str
    video_url: str
    thumbnail_url: str
    duration: float
    views: int
    created_at: datetime
    owner: VideoOwnerResponse

    model_config = CAMEL_CASE

    @classmethod
    def from_watched(cls, video: WatchedVideo) -> "WatchedVideoResponse":
        return cls(
            id=video.id,
            title=video.title,
            description=video.description,
            video_url=video.video_url,
            thumbnail_url=video.thumbnail_url,
            duration=video.duration,
            views=video.views,
            created_at=video.created_at,
            owner=VideoOwnerResponse(
                username=video.owner.username,
                full_name=video.owner.full_name,
                avatar=AssetResponse(asset_id=video.owner.avatar_asset_id, url=video.owner.avatar_url),
            ),
        )
