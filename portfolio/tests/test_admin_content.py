import io
from datetime import datetime

from PIL import Image

from portfolio import content
from portfolio.models import Message, Page, PageSection, Project, Skill, db


def create(admin, entity, **fields):
    response = admin.post(f"/admin/{entity}", json=fields)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def home_page_id(app):
    with app.app_context():
        return Page.query.filter_by(name="home").first().id


def test_admin_routes_require_session(client):
    response = client.get("/admin/dashboard")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}
    assert client.post("/admin/skills", json={"name": "Go", "level": 10}).status_code == 401
    assert client.delete("/admin/skills/abc").status_code == 401


def test_login_rejects_wrong_credentials(client):
    response = client.post("/admin/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401
    assert client.get("/admin/session").get_json() == {"authenticated": False}


def test_mutations_require_csrf_header(admin, client):
    response = client.post("/admin/skills", json={"name": "Go", "level": 10})
    assert response.status_code == 400
    assert "CSRF" in response.get_json()["error"]
    assert admin.post("/admin/skills", json={"name": "Go", "level": 10}).status_code == 201


def test_create_returns_persisted_record_with_defaults(admin):
    project = create(admin, "projects", title="Portfolio", description="This site", category="Web")
    assert project["id"]
    assert project["createdAt"] and project["updatedAt"]
    assert project["isVisible"] is True
    assert project["order"] == 0
    assert project["images"] == []
    assert project["techStack"] == []
    assert project["status"] == "completed"
    assert project["githubUrl"] is None


def test_create_lists_missing_required_fields(app, admin):
    response = admin.post("/admin/projects", json={"title": "Only a title"})
    assert response.status_code == 422
    body = response.get_json()
    assert sorted(body["missing"]) == ["category", "description"]

    response = admin.post("/admin/certificates", json={"title": "CKA"})
    assert sorted(response.get_json()["missing"]) == ["issueDate", "issuer"]

    with app.app_context():
        assert Project.query.count() == 0


def test_skill_level_out_of_range_is_rejected_without_a_row(app, admin):
    response = admin.post("/admin/skills", json={"name": "Go", "category": "Backend", "level": 150})
    assert response.status_code == 422
    details = response.get_json()["details"]
    assert details[0]["field"] == "level"
    with app.app_context():
        assert Skill.query.count() == 0


def test_malformed_json_is_a_bad_request(admin):
    response = admin.post("/admin/skills", data="{not json", content_type="application/json")
    assert response.status_code == 400
    assert response.get_json()["error"] == "Malformed JSON body"

    response = admin.post("/admin/skills", data="[1, 2]", content_type="application/json")
    assert response.status_code == 400


def test_update_merges_onto_existing_record(admin):
    project = create(
        admin, "projects",
        title="Portfolio", description="This site", category="Web",
        shortDesc="Short", githubUrl="https://github.com/me/site", techStack=["Flask"],
    )
    response = admin.put(f"/admin/projects/{project['id']}", json={"title": "Renamed", "shortDesc": None})
    assert response.status_code == 200
    updated = response.get_json()
    assert updated["title"] == "Renamed"
    assert updated["shortDesc"] is None
    assert updated["description"] == "This site"
    assert updated["githubUrl"] == "https://github.com/me/site"
    assert updated["techStack"] == ["Flask"]
    assert updated["version"] == project["version"] + 1


def test_update_rejects_null_for_required_fields(admin):
    skill = create(admin, "skills", name="Go", level=50)
    response = admin.put(f"/admin/skills/{skill['id']}", json={"name": None, "level": None})
    assert response.status_code == 422
    fields = {detail["field"] for detail in response.get_json()["details"]}
    assert fields == {"name", "level"}
    assert admin.get(f"/admin/skills/{skill['id']}").get_json()["name"] == "Go"


def test_update_validates_values(admin):
    skill = create(admin, "skills", name="Go", level=50)
    assert admin.put(f"/admin/skills/{skill['id']}", json={"level": 101}).status_code == 422
    project = create(admin, "projects", title="P", description="d", category="Web")
    response = admin.put(f"/admin/projects/{project['id']}", json={"liveUrl": "javascript:alert(1)"})
    assert response.status_code == 422


def test_update_with_stale_version_conflicts(admin):
    skill = create(admin, "skills", name="Go", level=50)
    admin.put(f"/admin/skills/{skill['id']}", json={"level": 60})
    response = admin.put(f"/admin/skills/{skill['id']}", json={"level": 70, "version": skill["version"]})
    assert response.status_code == 409
    assert admin.get(f"/admin/skills/{skill['id']}").get_json()["level"] == 60


def test_unknown_ids_are_not_found(admin):
    response = admin.put("/admin/skills/does-not-exist", json={"level": 10})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Skill not found"}
    assert admin.delete("/admin/projects/does-not-exist").status_code == 404
    assert admin.get("/admin/education/does-not-exist").status_code == 404
    assert admin.get("/admin/widgets").status_code == 404


def test_delete_removes_record(app, admin):
    skill = create(admin, "skills", name="Go", level=50)
    assert admin.delete(f"/admin/skills/{skill['id']}").status_code == 200
    with app.app_context():
        assert db.session.get(Skill, skill["id"]) is None


def test_deleting_page_cascades_to_sections(app, admin):
    page = create(admin, "pages", name="about", title="About", sections=[
        {"name": "intro", "content": {"description": "Hi"}},
        {"name": "cta", "type": "CTA", "content": {"primaryButton": "Hire me"}},
    ])
    assert len(page["sections"]) == 2
    assert admin.delete(f"/admin/pages/{page['id']}").status_code == 200
    with app.app_context():
        assert PageSection.query.filter_by(page_id=page["id"]).count() == 0


def test_admin_listing_includes_hidden_records(admin):
    create(admin, "skills", name="Visible", level=10)
    create(admin, "skills", name="Hidden", level=10, isVisible=False)
    names = {item["name"] for item in admin.get("/admin/skills").get_json()["items"]}
    assert names == {"Visible", "Hidden"}


def test_service_order_is_assigned_after_the_current_maximum(admin):
    assert create(admin, "services", title="First", description="d")["order"] == 0
    assert create(admin, "services", title="Pinned", description="d", order=7)["order"] == 7
    assert create(admin, "services", title="Next", description="d")["order"] == 8


def test_rich_text_is_sanitized(admin):
    project = create(
        admin, "projects", title="P", description="d", category="Web",
        content='<p>Hello <a href="https://example.com" onclick="steal()">link</a></p><script>alert(1)</script>',
    )
    assert "<script" not in project["content"]
    assert "onclick" not in project["content"]
    assert '<a href="https://example.com">link</a>' in project["content"]


def test_messages_are_managed_but_not_created_by_admin(app, admin, client):
    assert admin.post("/admin/messages", json={"name": "x"}).status_code == 405

    for index in range(2):
        client.post("/contact", json={
            "name": f"Sender {index}",
            "email": f"sender{index}@example.com",
            "message": "A message long enough to pass.",
        })
    items = admin.get("/admin/messages").get_json()["items"]
    assert len(items) == 2
    target = items[0]

    response = admin.put(f"/admin/messages/{target['id']}", json={"status": "READ", "isArchived": True})
    assert response.status_code == 200
    assert response.get_json()["status"] == "READ"

    assert len(admin.get("/admin/messages").get_json()["items"]) == 1
    assert len(admin.get("/admin/messages?archived=true").get_json()["items"]) == 2
    archived = admin.get("/admin/messages?archived=only").get_json()["items"]
    assert [item["id"] for item in archived] == [target["id"]]

    assert admin.put(f"/admin/messages/{target['id']}", json={"status": "SPAM"}).status_code == 422
    with app.app_context():
        assert db.session.get(Message, target["id"]).status == "READ"


def test_profile_is_created_lazily_then_updated(admin):
    defaults = admin.get("/admin/profile").get_json()
    assert defaults["id"] is None
    assert defaults["fullName"] == "Portfolio Owner"

    response = admin.put("/admin/profile", json={"fullName": "Ada Lovelace", "location": "London"})
    assert response.status_code == 201
    created = response.get_json()
    assert created["fullName"] == "Ada Lovelace"
    assert created["title"] == "Professional"

    response = admin.put("/admin/profile", json={"title": "Engineer", "location": None})
    assert response.status_code == 200
    updated = response.get_json()
    assert updated["id"] == created["id"]
    assert updated["fullName"] == "Ada Lovelace"
    assert updated["location"] is None

    assert admin.put("/admin/profile", json={"fullName": None}).status_code == 422


def test_site_settings_require_name_on_creation(admin):
    response = admin.put("/admin/site-settings", json={"maintenance": True})
    assert response.status_code == 422
    assert response.get_json()["missing"] == ["siteName"]

    response = admin.put("/admin/site-settings", json={"siteName": "Lab"})
    assert response.status_code == 201
    assert response.get_json()["fonts"] == {"heading": "Inter", "body": "Inter"}

    response = admin.put("/admin/site-settings", json={"colors": {"primary": "#000000"}})
    assert response.status_code == 200
    body = response.get_json()
    assert body["siteName"] == "Lab"
    assert body["colors"] == {"primary": "#000000"}
    assert body["fonts"] == {"heading": "Inter", "body": "Inter"}


def test_home_content_lists_all_sections(admin):
    payload = admin.get("/admin/home-content").get_json()
    assert payload["name"] == "home"
    assert len(payload["sections"]) == 8


def test_section_upsert_is_idempotent_on_page_and_name(app, admin):
    first = {"name": "cta_section", "type": "CTA", "title": "Let's talk", "content": {"primaryButton": "Email me"}}
    second = dict(first, title="Second write")
    assert admin.put("/admin/home-content", json={"sections": [first]}).status_code == 200
    response = admin.put("/admin/home-content", json={"sections": [second]})
    assert response.status_code == 200

    page_id = home_page_id(app)
    with app.app_context():
        rows = PageSection.query.filter_by(page_id=page_id, name="cta_section").all()
        assert len(rows) == 1
        assert rows[0].title == "Second write"
        assert rows[0].content == {"primaryButton": "Email me"}
        assert PageSection.query.filter_by(page_id=page_id).count() == 8


def test_section_upsert_creates_new_sections_and_keeps_omitted_fields(app, admin):
    admin.put("/admin/home-content", json={"sections": [
        {"name": "testimonials", "title": "Kind words", "order": 9},
    ]})
    admin.put("/admin/home-content", json={"sections": [{"name": "cta_section", "title": "New title"}]})

    page_id = home_page_id(app)
    with app.app_context():
        created = PageSection.query.filter_by(page_id=page_id, name="testimonials").one()
        assert created.type == "CONTENT"
        assert created.order == 9
        cta = PageSection.query.filter_by(page_id=page_id, name="cta_section").one()
        assert cta.type == "CTA"
        assert cta.content["secondaryButton"] == "Learn More About Me"


def test_section_content_is_validated_against_its_type(admin):
    response = admin.put("/admin/home-content", json={"sections": [
        {"name": "cta_section", "content": {"primaryButton": ["not", "a", "string"]}},
    ]})
    assert response.status_code == 422
    assert response.get_json()["details"][0]["field"] == "sections.0.content.primaryButton"

    response = admin.put("/admin/home-content", json={"sections": [{"name": "x", "type": "BANNER"}]})
    assert response.status_code == 422


def test_rejected_home_content_leaves_page_and_sections_untouched(app, admin):
    response = admin.put("/admin/home-content", json={
        "page": {"title": "Changed Title"},
        "sections": [
            {"name": "skills_title", "title": "Changed heading"},
            {"name": "cta_section", "content": {"primaryButton": 123}},
        ],
    })
    assert response.status_code == 422

    page_id = home_page_id(app)
    with app.app_context():
        page = db.session.get(Page, page_id)
        assert page.title == "Home Page"
        assert page.version == 1
        heading = PageSection.query.filter_by(page_id=page_id, name="skills_title").one()
        assert heading.title == "Technologies & Skills"


def test_home_content_applies_page_and_sections_together(app, admin):
    response = admin.put("/admin/home-content", json={
        "page": {"title": "Welcome"},
        "sections": [{"name": "skills_title", "title": "Stack"}],
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body["title"] == "Welcome"
    assert [s["title"] for s in body["sections"] if s["name"] == "skills_title"] == ["Stack"]


def test_retyped_section_keeps_only_fields_of_its_new_type(app, admin):
    response = admin.put("/admin/home-content", json={"sections": [{"name": "frontend_section", "type": "CTA"}]})
    assert response.status_code == 200

    page_id = home_page_id(app)
    with app.app_context():
        section = PageSection.query.filter_by(page_id=page_id, name="frontend_section").one()
        assert section.type == "CTA"
        assert section.content == {}

    admin.put("/admin/home-content", json={"sections": [{"name": "cta_section", "type": "CONTENT", "content": None}]})
    with app.app_context():
        section = PageSection.query.filter_by(page_id=page_id, name="cta_section").one()
        assert section.type == "CONTENT"
        assert section.content is None


def test_page_sections_endpoint_uses_same_upsert(app, admin):
    page = create(admin, "pages", name="services", title="Services")
    for _ in range(2):
        response = admin.put(f"/admin/pages/{page['id']}/sections", json={"sections": [
            {"name": "hero", "title": "What I offer"},
        ]})
        assert response.status_code == 200
    assert [s["name"] for s in response.get_json()["sections"]] == ["hero"]
    assert admin.put("/admin/pages/missing/sections", json={"sections": []}).status_code == 404


def test_duplicate_page_slug_conflicts(admin):
    create(admin, "pages", name="about", title="About")
    response = admin.post("/admin/pages", json={"name": "about-2", "title": "About"})
    assert response.status_code == 409


def test_dashboard_counts_are_consistent(app, admin, client, monkeypatch):
    create(admin, "projects", title="A", description="d", category="Web", featured=True)
    create(admin, "projects", title="B", description="d", category="Web")
    old = create(admin, "projects", title="C", description="d", category="Web", isVisible=False)
    create(admin, "skills", name="Go", level=10, isVisible=False)
    client.post("/contact", json={"name": "Sam", "email": "sam@example.com", "message": "Hello there, friend."})

    monkeypatch.setattr(content, "utc_now_naive", lambda: datetime(2026, 3, 15, 12, 0))
    with app.app_context():
        for model in (Project, Skill, Message):
            for record in model.query.all():
                record.created_at = datetime(2026, 3, 2, 9, 0)
        db.session.get(Project, old["id"]).created_at = datetime(2026, 2, 28, 23, 59)
        db.session.commit()

    payload = admin.get("/admin/dashboard").get_json()
    stats = payload["stats"]
    assert stats["projects"] == {"total": 3, "visible": 2, "featured": 1, "thisMonth": 2}
    assert stats["skills"] == {"total": 1, "visible": 0, "thisMonth": 1}
    assert stats["messages"] == {"total": 1, "unread": 1, "thisMonth": 1}
    for counters in stats.values():
        if "visible" in counters:
            assert counters["visible"] <= counters["total"]
    assert len(payload["recentProjects"]) == 3
    assert payload["recentMessages"][0]["name"] == "Sam"


def png_bytes(size=(120, 80)):
    buffer = io.BytesIO()
    Image.new("RGB", size, "red").save(buffer, "PNG")
    buffer.seek(0)
    return buffer


def test_upload_stores_image_and_serves_it(app, admin, client):
    response = admin.post(
        "/admin/uploads",
        data={"file": (png_bytes(), "My Logo.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["path"].endswith("-my-logo.png")
    assert body["url"] == f"/media/{body['path']}"
    assert body["contentType"] == "image/png"

    served = client.get(body["url"])
    assert served.status_code == 200
    assert served.data[:8] == b"\x89PNG\r\n\x1a\n"


def test_upload_resizes_icons(app, admin):
    response = admin.post(
        "/admin/uploads",
        data={"file": (png_bytes((300, 150)), "icon.png", "image/png"), "resize": "true"},
        content_type="multipart/form-data",
    )
    assert response.status_code == 201
    path = response.get_json()["path"]
    with Image.open(f"{app.config['UPLOAD_FOLDER']}/{path}") as image:
        assert image.size == (48, 48)
        assert image.mode == "RGBA"


def test_upload_rejects_unsupported_files(admin, client):
    response = admin.post(
        "/admin/uploads",
        data={"file": (io.BytesIO(b"plain text"), "notes.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400

    response = admin.post(
        "/admin/uploads",
        data={"file": (io.BytesIO(b"not really a png"), "fake.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert admin.post("/admin/uploads", data={}, content_type="multipart/form-data").status_code == 400
    assert client.get("/media/../config.py").status_code == 404
