"""Editorial content models shared by all users."""
from typing import Optional

from pydantic import EmailStr

from .base import CamelModel


class ArticleInput(CamelModel):
    category: str
    title: str
    summary: str = ""
    image_url: str = ""
    author: str = ""
    author_avatar: str = ""
    published_date: Optional[str] = None
    content: str = ""


class Article(ArticleInput):
    id: str


class MeditationInput(CamelModel):
    title: str
    duration: str = ""
    summary: str = ""
    category: str = ""
    image_url: str = ""
    script: str = ""


class Meditation(MeditationInput):
    id: str


class ArticleLikes(CamelModel):
    likes: list[str]


class SpecialistsSubscriptionRequest(CamelModel):
    email: EmailStr
