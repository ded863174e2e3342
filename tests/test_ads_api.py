import datetime as dt

import pytest

from exchange.services import ads as ads_svc
from exchange.utils.clock import utcnow

pytestmark = pytest.mark.integration

AD = {
    "title": "Range day",
    "description": "Half price lanes",
    "target_url": "https://example.com/range",
    "sponsor": "Local Range",
    "sponsor_email": "ads@example.com",
    "position": "sidebar",
}


@pytest.fixture
def admin_client(client, make_user, login):
    login(make_user("boss", is_admin=True))
    return client


class TestAdvertisements:
    def test_create_and_list_by_position(self, admin_client):
        r = admin_client.post("/api/advertisements", json=AD)
        assert r.status_code == 201
        assert r.json()["size"] == "medium"
        admin_client.post("/api/advertisements", json={**AD, "position": "in-feed"})

        sidebar = admin_client.get("/api/advertisements", params={"position": "sidebar"}).json()
        assert [a["position"] for a in sidebar] == ["sidebar"]
        assert len(admin_client.get("/api/advertisements").json()) == 2

    def test_missing_field(self, admin_client):
        r = admin_client.post("/api/advertisements", json={**AD, "sponsor": ""})
        assert r.status_code == 400
        assert r.json()["message"] == "Sponsor is required"

    def test_bad_position(self, admin_client):
        r = admin_client.post("/api/advertisements", json={**AD, "position": "popup"})
        assert r.status_code == 400

    def test_inactive_and_expired_hidden(self, admin_client):
        a = admin_client.post("/api/advertisements", json=AD).json()
        admin_client.put(f"/api/advertisements/{a['id']}", json={"is_active": False})
        past = (utcnow() - dt.timedelta(days=1)).isoformat()
        admin_client.post("/api/advertisements", json={**AD, "end_date": past})
        assert admin_client.get("/api/advertisements").json() == []
        assert len(admin_client.get("/api/admin/advertisements").json()) == 2

    def test_counters(self, admin_client):
        a = admin_client.post("/api/advertisements", json=AD).json()
        admin_client.post(f"/api/advertisements/{a['id']}/impression")
        admin_client.post(f"/api/advertisements/{a['id']}/impression")
        r = admin_client.post(f"/api/advertisements/{a['id']}/click")
        assert r.json()["target_url"] == AD["target_url"]
        row = admin_client.get("/api/admin/advertisements").json()[0]
        assert (row["impressions"], row["clicks"]) == (2, 1)

    def test_delete(self, admin_client):
        a = admin_client.post("/api/advertisements", json=AD).json()
        assert admin_client.delete(f"/api/advertisements/{a['id']}").status_code == 200
        assert admin_client.post(f"/api/advertisements/{a['id']}/click").status_code == 404

    def test_moderator_cannot_manage(self, client, make_user, login):
        login(make_user("mod", is_moderator=True))
        assert client.post("/api/advertisements", json=AD).status_code == 403


class TestFeatured:
    def test_only_current_listings(self, admin_client, db, make_user, categories):
        from exchange.services.posts import create_post

        seller = make_user("seller")
        post = create_post(db, seller, {"title": "Rifle", "content": "c", "category_id": categories[0].id})
        future = (utcnow() + dt.timedelta(days=3)).isoformat()
        r = admin_client.post("/api/featured-listings", json={
            "post_id": post.id, "sponsor_id": seller.id, "featured_until": future, "daily_rate": 5,
        })
        assert r.status_code == 201
        ads_svc.create_featured(db, {
            "post_id": post.id, "sponsor_id": seller.id,
            "featured_until": utcnow() - dt.timedelta(hours=1), "daily_rate": 5,
        })

        listed = admin_client.get("/api/featured-listings").json()
        assert len(listed) == 1
        assert listed[0]["post"]["title"] == "Rifle"

    def test_unknown_post(self, admin_client, make_user):
        u = make_user("seller")
        r = admin_client.post("/api/featured-listings", json={"post_id": 1, "sponsor_id": u.id})
        assert r.status_code == 404
