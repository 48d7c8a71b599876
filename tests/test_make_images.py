"""
Tests for the brand/make/color image gallery stored on disk.
"""

import uuid
from io import BytesIO
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException, UploadFile
from PIL import Image
from starlette.datastructures import Headers

from api.services.make_image_service import (
    MakeImageService,
    build_image_filename,
    extract_year,
)


def upload(fmt: str = "JPEG", content_type: str = "image/jpeg") -> UploadFile:
    buffer = BytesIO()
    Image.new("RGB", (300, 200), color="blue").save(buffer, format=fmt)
    buffer.seek(0)
    return UploadFile(
        file=buffer,
        filename="foto.jpg",
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def service(tmp_path):
    return MakeImageService(root=tmp_path)


def test_build_image_filename():
    assert build_image_filename("yamaha", "mt-07", "azul", 2024, "jpg", 1700000000) == (
        "yamaha-mt-07-azul-2024-1700000000.jpg"
    )
    assert build_image_filename("yamaha", "mt-07", "azul", None, "png", 1) == "yamaha-mt-07-azul-1.png"


def test_extract_year():
    assert extract_year("yamaha-mt-07-azul-2024-1700000000.jpg") == 2024
    assert extract_year("yamaha-mt-07-azul-1700000000.jpg") is None


class TestUpload:
    async def test_upload_goes_to_color_folder(self, service, tmp_path):
        with patch.object(service, "_get_slugs", AsyncMock(return_value=("yamaha", "mt-07"))):
            image = await service.upload_make_image(uuid.uuid4(), upload(), "Azul Metálico", 2024)

        assert image.color == "Azul Metálico"
        assert image.color_slug == "azul-metalico"
        assert image.year == 2024
        assert image.path.startswith("yamaha/mt-07/azul-metalico/yamaha-mt-07-azul-metalico-2024-")
        assert image.url == f"/catalog-images/{image.path}"
        assert (tmp_path / image.path).is_file()

    async def test_upload_requires_color(self, service):
        with pytest.raises(HTTPException) as exc:
            await service.upload_make_image(uuid.uuid4(), upload(), "  ")
        assert exc.value.status_code == 400

    async def test_upload_rejects_non_image(self, service):
        fake = UploadFile(
            file=BytesIO(b"%PDF-1.4" + b"\x00" * 200),
            filename="x.jpg",
            headers=Headers({"content-type": "image/jpeg"}),
        )
        with patch.object(service, "_get_slugs", AsyncMock(return_value=("yamaha", "mt-07"))):
            with pytest.raises(HTTPException) as exc:
                await service.upload_make_image(uuid.uuid4(), fake, "Azul")
        assert exc.value.status_code == 400


class TestListUpdateDelete:
    def _seed(self, root):
        model = root / "honda" / "cb190r"
        (model / "rojo").mkdir(parents=True)
        (model / "legacy.jpg").write_bytes(b"x")
        (model / "rojo" / "honda-cb190r-rojo-2023-1.jpg").write_bytes(b"x")
        (model / "rojo" / "readme.txt").write_bytes(b"x")
        return model

    def test_list_legacy_first_then_colors(self, service, tmp_path):
        self._seed(tmp_path)
        images = service.list_make_images("honda", "cb190r")

        assert [i.path for i in images] == [
            "honda/cb190r/legacy.jpg",
            "honda/cb190r/rojo/honda-cb190r-rojo-2023-1.jpg",
        ]
        assert images[0].color is None
        assert images[1].color == "Rojo"
        assert images[1].year == 2023

    def test_list_missing_folder(self, service):
        assert service.list_make_images("honda", "unknown") == []

    def test_list_rejects_traversal(self, service):
        with pytest.raises(HTTPException) as exc:
            service.list_make_images("..", "cb190r")
        assert exc.value.status_code == 400

    def test_update_moves_to_new_color(self, service, tmp_path):
        model = self._seed(tmp_path)
        (model / "rojo" / "readme.txt").unlink()

        image = service.update_make_image("honda/cb190r/rojo/honda-cb190r-rojo-2023-1.jpg", "Negro", 2024)

        assert image.color_slug == "negro"
        assert (tmp_path / image.path).is_file()
        # emptied color folder is removed, the model folder stays
        assert not (model / "rojo").exists()
        assert model.is_dir()

    def test_update_missing_image(self, service, tmp_path):
        self._seed(tmp_path)
        with pytest.raises(HTTPException) as exc:
            service.update_make_image("honda/cb190r/rojo/missing.jpg", "Negro")
        assert exc.value.status_code == 404

    def test_delete(self, service, tmp_path):
        model = self._seed(tmp_path)
        service.delete_make_image("honda/cb190r/legacy.jpg")
        assert not (model / "legacy.jpg").exists()

    def test_delete_missing_is_noop(self, service, tmp_path):
        self._seed(tmp_path)
        service.delete_make_image("honda/cb190r/gone.jpg")

    @pytest.mark.parametrize(
        "path",
        ["../../etc/passwd.jpg", "honda/a.jpg", "honda/cb190r/rojo/extra/a.jpg", "/honda/cb190r/a.jpg"],
    )
    def test_invalid_paths(self, service, path):
        with pytest.raises(HTTPException) as exc:
            service.delete_make_image(path)
        assert exc.value.status_code == 400
