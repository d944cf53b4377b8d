import asyncio
import base64
import io
import logging

import httpx
from PIL import Image

from assets import circle_crop, decode_data_uri, load_assets, load_image, resolve_path


def png_bytes(size: tuple[int, int] = (40, 20), color: str = "navy") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def mock_client(routes: dict[str, bytes]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_decode_data_uri() -> None:
    data = png_bytes()
    uri = "data:image/png;base64," + base64.b64encode(data).decode("ascii")
    assert decode_data_uri(uri) == data


def test_resolve_path_under_asset_root(tmp_path) -> None:
    assert resolve_path("/img/logo.png", str(tmp_path)) == tmp_path / "img" / "logo.png"
    assert resolve_path("img/logo.png", None).as_posix() == "img/logo.png"


def test_circle_crop_is_square_with_clear_corners() -> None:
    avatar = circle_crop(Image.new("RGB", (60, 40), "red"))
    assert avatar.size == (40, 40)
    assert avatar.mode == "RGBA"
    assert avatar.getpixel((0, 0))[3] == 0
    assert avatar.getpixel((20, 20))[3] == 255


def test_load_image_missing_file_logs_warning(tmp_path, caplog) -> None:
    async def run() -> Image.Image | None:
        async with mock_client({}) as client:
            return await load_image("nope.png", client, str(tmp_path), label="logo #1")

    with caplog.at_level(logging.WARNING, logger="assets"):
        assert asyncio.run(run()) is None
    assert "Failed to load logo #1" in caplog.text


def test_load_image_remote_failure_is_not_fatal(caplog) -> None:
    async def run() -> Image.Image | None:
        async with mock_client({}) as client:
            return await load_image("https://cdn.example.edu/logo.png", client)

    with caplog.at_level(logging.WARNING, logger="assets"):
        assert asyncio.run(run()) is None
    assert "404" in caplog.text


def test_load_assets_mixes_sources(tmp_path) -> None:
    img_dir = tmp_path / "img"
    img_dir.mkdir()
    (img_dir / "left.png").write_bytes(png_bytes())
    (img_dir / "footer.png").write_bytes(png_bytes((200, 10)))
    avatar_uri = "data:image/png;base64," + base64.b64encode(png_bytes((30, 30))).decode("ascii")
    config = {
        "asset_root": str(tmp_path),
        "logos": ["img/left.png", "https://cdn.example.edu/seal.png", None],
        "footer_image": "img/footer.png",
    }

    async def run():
        async with mock_client({"https://cdn.example.edu/seal.png": png_bytes((16, 16))}) as client:
            return await load_assets(config, avatar_uri, client)

    assets = asyncio.run(run())
    assert [logo is not None for logo in assets.logos] == [True, True, False]
    assert assets.logos[1].size == (16, 16)
    assert assets.footer.size == (200, 10)
    assert assets.avatar.size == (30, 30)
    assert assets.avatar.mode == "RGBA"


def test_load_assets_with_nothing_configured() -> None:
    async def run():
        async with mock_client({}) as client:
            return await load_assets({"logos": [], "footer_image": None}, None, client)

    assets = asyncio.run(run())
    assert assets.logos == []
    assert assets.footer is None
    assert assets.avatar is None
