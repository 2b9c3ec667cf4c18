"""
Тесты для публичных ссылок и доступа по коду
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select

from filedrop.exceptions import (
    NotFoundError,
    PermissionError,
    SubscriptionRequiredError,
)
from filedrop.models.download_event import DownloadEvent
from filedrop.models.share_link import LinkType
from filedrop.schemas.share_link import ShareLinkCreate
from filedrop.services.share_link_service import ShareLinkService
from tests.factories import FileFactory, SharedLinkFactory


@pytest_asyncio.fixture
async def free_file(db_session, free_user):
    file = FileFactory(user_id=free_user.id)
    db_session.add(file)
    await db_session.commit()
    await db_session.refresh(file)
    return file


class TestShareLinkCreateSchema:
    def test_defaults(self):
        data = ShareLinkCreate(file_id=uuid4())
        assert data.link_type == LinkType.DIRECT
        assert data.expiry_days == 7
        assert data.password is None

    def test_email_link_needs_recipient(self):
        with pytest.raises(PydanticValidationError):
            ShareLinkCreate(file_id=uuid4(), link_type=LinkType.EMAIL)

    def test_download_limit_positive(self):
        with pytest.raises(PydanticValidationError):
            ShareLinkCreate(file_id=uuid4(), download_limit=0)


@pytest.mark.asyncio
class TestShareLinkService:
    """Тесты ShareLinkService"""

    async def test_create_default_link(self, db_session, free_user, free_file):
        link = await ShareLinkService(db_session).create_share_link(
            ShareLinkCreate(file_id=free_file.id), free_user.id
        )

        assert link.is_active
        assert len(link.share_token) >= 32
        assert link.password_hash is None
        remaining = link.expires_at - datetime.now(UTC)
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    @pytest.mark.parametrize(
        "extra",
        [{"password": "secret"}, {"download_limit": 5}, {"expiry_days": 30}],
    )
    async def test_pro_features_rejected_on_free(
        self, db_session, free_user, free_file, extra
    ):
        with pytest.raises(SubscriptionRequiredError):
            await ShareLinkService(db_session).create_share_link(
                ShareLinkCreate(file_id=free_file.id, **extra), free_user.id
            )

    async def test_pro_link_with_everything(self, db_session, pro_user, stored_file):
        link = await ShareLinkService(db_session).create_share_link(
            ShareLinkCreate(
                file_id=stored_file.id,
                password="secret",
                download_limit=3,
                expiry_days=0,
            ),
            pro_user.id,
        )

        assert link.password_hash and link.password_hash != "secret"
        assert link.download_limit == 3
        assert link.expires_at is None

    async def test_cannot_share_foreign_file(self, db_session, free_user, stored_file):
        with pytest.raises(PermissionError):
            await ShareLinkService(db_session).create_share_link(
                ShareLinkCreate(file_id=stored_file.id), free_user.id
            )

    async def test_deactivate_keeps_row(self, db_session, pro_user, stored_file):
        link = SharedLinkFactory(file_id=stored_file.id)
        db_session.add(link)
        await db_session.commit()
        service = ShareLinkService(db_session)

        deactivated = await service.deactivate_share_link(link.id, pro_user.id)

        assert deactivated.is_active is False
        assert await service.get_user_share_links(pro_user.id) == []
        links = await service.get_user_share_links(pro_user.id, include_inactive=True)
        assert [item.id for item in links] == [link.id]

    async def test_foreign_link_not_found(self, db_session, free_user, stored_file):
        link = SharedLinkFactory(file_id=stored_file.id)
        db_session.add(link)
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await ShareLinkService(db_session).get_owned_link(link.id, free_user.id)

    async def test_stats(self, db_session, pro_user, stored_file):
        db_session.add_all(
            [
                SharedLinkFactory(file_id=stored_file.id, download_count=5),
                SharedLinkFactory(
                    file_id=stored_file.id,
                    download_count=2,
                    expires_at=datetime.now(UTC) - timedelta(days=1),
                ),
                SharedLinkFactory(file_id=stored_file.id, is_active=False),
            ]
        )
        await db_session.commit()

        stats = await ShareLinkService(db_session).get_share_stats(pro_user.id)

        assert stats.total_links == 3
        assert stats.active_links == 2
        assert stats.expired_links == 1
        assert stats.total_downloads == 7
        assert stats.most_downloaded[0].download_count == 5
        assert stats.most_downloaded[0].public_url.endswith(
            f"/share/{stats.most_downloaded[0].share_token}"
        )


@pytest.mark.asyncio
class TestShareLinksAPI:
    """Тесты API публичных ссылок"""

    async def test_create_and_download_with_password(
        self, client, pro_headers, stored_file
    ):
        file_id = str(stored_file.id)
        response = await client.post(
            "/api/v1/share-links/",
            headers=pro_headers,
            json={"file_id": file_id, "password": "pw", "download_limit": 1},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["has_password"] is True
        token = body["share_token"]

        response = await client.get(f"/api/v1/share-links/public/{token}")
        assert response.status_code == 200
        assert response.json()["requires_password"] is True
        assert response.json()["available"] is True

        response = await client.post(f"/api/v1/share-links/public/{token}/download")
        assert response.status_code == 401
        assert response.json()["details"]["reason"] == "password_required"

        response = await client.post(
            f"/api/v1/share-links/public/{token}/download", json={"password": "bad"}
        )
        assert response.status_code == 401
        assert response.json()["details"]["reason"] == "invalid_password"

        response = await client.post(
            f"/api/v1/share-links/public/{token}/download",
            json={"password": "pw"},
            headers={"User-Agent": "pytest-client", "X-Forwarded-For": "203.0.113.9"},
        )
        assert response.status_code == 200
        assert response.content == b"report body"

        response = await client.post(
            f"/api/v1/share-links/public/{token}/download", json={"password": "pw"}
        )
        assert response.status_code == 410
        assert response.json()["details"]["reason"] == "limit_reached"

    async def test_free_user_gets_402_for_password(
        self, client, db_session, free_headers, free_file
    ):
        response = await client.post(
            "/api/v1/share-links/",
            headers=free_headers,
            json={"file_id": str(free_file.id), "password": "pw"},
        )
        assert response.status_code == 402
        assert response.json()["details"]["code"] == "SUBSCRIPTION_REQUIRED"

    async def test_code_lookup_and_download(
        self, client, db_session, pro_headers, stored_file
    ):
        file_id = stored_file.id
        response = await client.post(
            f"/api/v1/files/{file_id}/share-code", headers=pro_headers
        )
        code = response.json()["share_code"]

        response = await client.get(f"/api/v1/share-links/code/{code.lower()}")
        assert response.status_code == 200
        assert response.json()["method"] == "code"
        assert response.json()["file_name"] == "report.pdf"

        response = await client.post(f"/api/v1/share-links/code/{code}/download")
        assert response.status_code == 200
        assert "report.pdf" in response.headers["content-disposition"]

    async def test_forwarded_for_is_not_trusted(
        self, client, db_session, stored_file
    ):
        """IP скачавшего берётся из соединения, а не из заголовка клиента"""
        stored_file.share_code = "ABCD1234"
        await db_session.commit()

        response = await client.post(
            "/api/v1/share-links/code/abcd1234/download",
            headers={"X-Forwarded-For": "6.6.6.6", "X-Real-IP": "6.6.6.7"},
        )
        assert response.status_code == 200

        result = await db_session.execute(select(DownloadEvent.downloader_ip))
        assert result.scalars().all() == ["127.0.0.1"]

    @pytest.mark.parametrize("code", ["NOPE0000", "x"])
    async def test_unknown_code_is_404(self, client, code):
        response = await client.get(f"/api/v1/share-links/code/{code}")
        assert response.status_code == 404
        assert response.json()["details"]["code"] == "SHARE_NOT_FOUND"

    async def test_deactivated_link_is_404(
        self, client, db_session, pro_headers, stored_file
    ):
        link = SharedLinkFactory(file_id=stored_file.id)
        db_session.add(link)
        await db_session.commit()
        link_id, token = link.id, link.share_token

        response = await client.delete(
            f"/api/v1/share-links/{link_id}", headers=pro_headers
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = await client.get(f"/api/v1/share-links/public/{token}")
        assert response.status_code == 404

    async def test_list_and_stats(self, client, db_session, pro_headers, stored_file):
        db_session.add(SharedLinkFactory(file_id=stored_file.id))
        await db_session.commit()

        response = await client.get("/api/v1/share-links/", headers=pro_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1

        response = await client.get("/api/v1/share-links/stats", headers=pro_headers)
        assert response.status_code == 200
        assert response.json()["total_links"] == 1


@pytest.mark.asyncio
class TestSharePage:
    async def test_share_page_renders(self, client, db_session, stored_file):
        link = SharedLinkFactory(file_id=stored_file.id)
        db_session.add(link)
        await db_session.commit()

        response = await client.get(f"/share/{link.share_token}")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "report.pdf" in response.text

    async def test_unknown_share_page(self, client):
        response = await client.get("/share/does-not-exist")
        assert response.status_code == 404
        assert "text/html" in response.headers["content-type"]
