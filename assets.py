"""Best-effort loading of logos, avatar and footer images for the PDF export."""

from __future__ import annotations

import asyncio
import base64
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from PIL import Image, ImageChops, ImageDraw

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/"


@dataclass
class BrandAssets:
    logos: list[Image.Image | None] = field(default_factory=list)
    avatar: Image.Image | None = None
    footer: Image.Image | None = None


def is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def decode_data_uri(source: str) -> bytes:
    header, _, payload = source.partition(",")
    if not payload:
        raise ValueError("data URI has no payload")
    if header.endswith(";base64"):
        return base64.b64decode(payload, validate=True)
    return payload.encode("latin-1")


def resolve_path(source: str, asset_root: str | None) -> Path:
    path = Path(source.lstrip("/")) if asset_root else Path(source)
    if asset_root and not path.is_absolute():
        path = Path(asset_root) / path
    return path


async def read_source(
    source: str, client: httpx.AsyncClient, asset_root: str | None = None
) -> bytes:
    if source.startswith(DATA_URI_PREFIX):
        return decode_data_uri(source)
    if is_remote(source):
        response = await client.get(source)
        response.raise_for_status()
        return response.content
    path = resolve_path(source, asset_root)
    return await asyncio.to_thread(path.read_bytes)


def open_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


async def load_image(
    source: str | None,
    client: httpx.AsyncClient,
    asset_root: str | None = None,
    label: str = "image",
) -> Image.Image | None:
    if not source:
        return None
    try:
        data = await read_source(source, client, asset_root)
        return open_image(data)
    except (OSError, ValueError, httpx.HTTPError) as exc:
        logger.warning("Failed to load %s from %s: %s", label, source[:80], exc)
        return None


def circle_crop(image: Image.Image) -> Image.Image:
    image = image.convert("RGBA")
    side = min(image.size)
    left = (image.width - side) // 2
    top = (image.height - side) // 2
    square = image.crop((left, top, left + side, top + side))
    mask = Image.new("L", (side, side), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, side - 1, side - 1), fill=255)
    square.putalpha(ImageChops.multiply(square.getchannel("A"), mask))
    return square


async def load_assets(
    config: dict,
    avatar_source: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> BrandAssets:
    """Fetch every brand image and the avatar concurrently.

    A missing or unreadable image leaves its slot empty; it never fails the
    export.
    """
    if client is None:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            return await load_assets(config, avatar_source, own_client)

    asset_root = config.get("asset_root")
    logo_sources = list(config.get("logos") or [])
    tasks = [
        load_image(source, client, asset_root, label=f"logo #{index + 1}")
        for index, source in enumerate(logo_sources)
    ]
    tasks.append(load_image(config.get("footer_image"), client, asset_root, label="footer image"))
    tasks.append(load_image(avatar_source, client, asset_root, label="profile picture"))
    results = await asyncio.gather(*tasks)

    avatar = results[-1]
    if avatar is not None:
        avatar = circle_crop(avatar)
    return BrandAssets(
        logos=list(results[: len(logo_sources)]),
        avatar=avatar,
        footer=results[-2],
    )
