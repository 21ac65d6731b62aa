"""
Tests for media upload, listing, regrouping and the viewer broadcast.
"""
from pathlib import Path

import pytest

from adpanel.config import get_settings
from adpanel.models import Group, Media
from adpanel.routes import media as media_routes


@pytest.fixture
def broadcasts(monkeypatch):
    """Record media_updated broadcasts instead of publishing them."""
    sent = []

    async def record(user_id, group_id):
        sent.append((user_id, group_id))
        return 0

    monkeypatch.setattr(media_routes, "emit_media_updated", record)
    return sent


def files(*names):
    return [("files", (name, b"fake-bytes-" + name.encode(), mime)) for name, mime in names]


class TestUpload:

    def test_upload_zero_files(self, client, auth_headers, broadcasts):
        response = client.post("/api/media/upload", headers=auth_headers, data={})
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert broadcasts == []

    def test_upload_creates_one_row_per_file_and_one_broadcast(
        self, client, db, test_user, group, auth_headers, broadcasts
    ):
        response = client.post(
            "/api/media/upload",
            headers=auth_headers,
            data={"group_id": str(group.id)},
            files=files(("promo.png", "image/png"), ("clip.mp4", "video/mp4"), ("deck.pptx", "application/vnd.ms-powerpoint")),
        )
        assert response.status_code == 200
        body = response.json()
        assert [m["type"] for m in body["media"]] == ["image", "video", "application"]

        rows = db.query(Media).filter(Media.user_id == test_user.id).all()
        assert len(rows) == 3
        assert {r.group_id for r in rows} == {group.id}
        assert broadcasts == [(test_user.id, group.id)]

        upload_dir = Path(get_settings().upload_dir)
        for row in rows:
            assert (upload_dir / row.file_path).exists()
            assert row.file_path.endswith(row.original_name)

    def test_upload_without_group(self, client, db, test_user, auth_headers, broadcasts):
        response = client.post(
            "/api/media/upload",
            headers=auth_headers,
            files=files(("solo.jpg", "image/jpeg")),
        )
        assert response.status_code == 200
        assert db.query(Media).one().group_id is None
        assert broadcasts == [(test_user.id, None)]

    def test_upload_into_foreign_group(self, client, db, other_user, auth_headers, broadcasts):
        foreign = Group(user_id=other_user.id, name="Not mine")
        db.add(foreign)
        db.commit()

        response = client.post(
            "/api/media/upload",
            headers=auth_headers,
            data={"group_id": str(foreign.id)},
            files=files(("promo.png", "image/png")),
        )
        assert response.status_code == 404
        assert db.query(Media).count() == 0
        assert broadcasts == []

    def test_disk_failure_mid_batch_leaves_nothing_behind(
        self, client, db, test_user, auth_headers, broadcasts, monkeypatch
    ):
        upload_dir = Path(get_settings().upload_dir)
        before = set(upload_dir.iterdir())
        real_write_bytes = Path.write_bytes
        writes = []

        def disk_full_on_second_file(path, data):
            writes.append(path)
            if len(writes) == 2:
                raise OSError(28, "No space left on device")
            return real_write_bytes(path, data)

        monkeypatch.setattr(Path, "write_bytes", disk_full_on_second_file)
        response = client.post(
            "/api/media/upload",
            headers=auth_headers,
            files=files(("a.png", "image/png"), ("b.png", "image/png"), ("c.png", "image/png")),
        )

        assert response.status_code == 500
        assert response.json()["error_code"] == "STORE_ERROR"
        assert set(upload_dir.iterdir()) == before
        assert db.query(Media).count() == 0
        assert broadcasts == []

    def test_upload_requires_auth(self, client, db):
        response = client.post("/api/media/upload", files=files(("promo.png", "image/png")))
        assert response.status_code == 401

    def test_uploaded_file_is_served(self, client, auth_headers, broadcasts):
        response = client.post(
            "/api/media/upload",
            headers=auth_headers,
            files=files(("promo.png", "image/png")),
        )
        url = response.json()["media"][0]["url"]
        served = client.get(url)
        assert served.status_code == 200
        assert served.content == b"fake-bytes-promo.png"


class TestListAndRegroup:

    def test_list_only_own_media_in_storage_order(self, client, db, test_user, other_user, auth_headers):
        db.add_all([
            Media(user_id=test_user.id, media_type="image", file_path="1.png"),
            Media(user_id=other_user.id, media_type="image", file_path="theirs.png"),
            Media(user_id=test_user.id, media_type="video", file_path="2.mp4"),
        ])
        db.commit()

        response = client.get("/api/media/list", headers=auth_headers)
        assert response.status_code == 200
        assert [m["file_path"] for m in response.json()["media"]] == ["1.png", "2.mp4"]

    def test_regroup(self, client, db, test_user, group, auth_headers, broadcasts):
        media = Media(user_id=test_user.id, media_type="image", file_path="1.png")
        db.add(media)
        db.commit()

        response = client.patch(f"/api/media/{media.id}", headers=auth_headers, json={"group_id": group.id})
        assert response.status_code == 200
        assert response.json()["group_id"] == group.id
        assert broadcasts == [(test_user.id, group.id)]

    def test_regroup_other_users_media(self, client, db, other_user, auth_headers, broadcasts):
        media = Media(user_id=other_user.id, media_type="image", file_path="theirs.png")
        db.add(media)
        db.commit()

        response = client.patch(f"/api/media/{media.id}", headers=auth_headers, json={"group_id": None})
        assert response.status_code == 404


class TestGroups:

    def test_create_and_list_groups(self, client, auth_headers):
        created = client.post("/api/groups", headers=auth_headers, json={"name": "Reception"})
        assert created.status_code == 201

        listed = client.get("/api/groups", headers=auth_headers).json()
        assert [g["name"] for g in listed] == ["Reception"]

    def test_group_detail_includes_media(self, client, db, test_user, group, auth_headers):
        db.add(Media(user_id=test_user.id, group_id=group.id, media_type="image", file_path="1.png"))
        db.commit()

        response = client.get(f"/api/groups/{group.id}", headers=auth_headers)
        assert response.status_code == 200
        assert [m["file_path"] for m in response.json()["media"]] == ["1.png"]

    def test_group_detail_of_other_user(self, client, db, other_user, auth_headers):
        foreign = Group(user_id=other_user.id, name="Not mine")
        db.add(foreign)
        db.commit()
        assert client.get(f"/api/groups/{foreign.id}", headers=auth_headers).status_code == 404
