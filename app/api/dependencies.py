from fastapi import Request

from app.services.container import ServiceContainer
from app.services.emoji_cache import EmojiCache
from app.services.reaction_loader import ReactionLoader


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_emoji_cache(request: Request) -> EmojiCache:
    return get_services(request).emoji_cache


def get_reaction_loader(request: Request) -> ReactionLoader:
    return get_services(request).reaction_loader
