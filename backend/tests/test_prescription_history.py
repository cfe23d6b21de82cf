from __future__ import annotations

from fastapi.testclient import TestClient

from rxlens_core import extract_analysis

STRUCTURED_TEXT = (
    "medication: Amoxicillin, dosage: 500mg, frequency: 3 times daily, duration: 7 days\n"
    "condition: Upper respiratory tract infection\n"
)
IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


def _analyze(client, headers) -> dict:
    response = client.post("/analyze-prescription", headers=headers, json={"image": IMAGE})
    assert response.status_code == 200
    return response.json()


def test_history_lists_newest_first_and_is_user_scoped(client, auth_headers, fake_model_text):
    fake_model_text(STRUCTURED_TEXT)
    first = _analyze(client, auth_headers("user-a"))
    second = _analyze(client, auth_headers("user-a"))

    response = client.get("/prescriptions", headers=auth_headers("user-a"))
    assert response.status_code == 200
    ids = [row["id"] for row in response.json()["prescriptions"]]
    assert ids == [second["prescriptionId"], first["prescriptionId"]]
    assert response.json()["prescriptions"][0]["recommendations"] == second["analysis"]["recommendations"]

    other = client.get("/prescriptions", headers=auth_headers("user-b"))
    assert other.json() == {"prescriptions": []}


def test_detail_includes_stored_analysis(client, auth_headers, fake_model_text):
    fake_model_text(STRUCTURED_TEXT)
    created = _analyze(client, auth_headers("user-a"))

    response = client.get(f"/prescriptions/{created['prescriptionId']}", headers=auth_headers("user-a"))

    assert response.status_code == 200
    detail = response.json()
    assert detail["medication_name"] == "Amoxicillin"
    assert detail["analysis"] == created["analysis"]


def test_detail_of_other_users_prescription_is_not_found(client, auth_headers, fake_model_text):
    fake_model_text(STRUCTURED_TEXT)
    created = _analyze(client, auth_headers("user-a"))

    response = client.get(f"/prescriptions/{created['prescriptionId']}", headers=auth_headers("user-b"))

    assert response.status_code == 404
    assert response.json() == {"error": "Prescription not found"}


def test_header_without_analysis_shows_null_analysis(client, auth_headers, backend_module):
    store = backend_module.container.store
    store.ensure_user("user-a")
    prescription_id = store.create_prescription(user_id="user-a", analysis=extract_analysis(STRUCTURED_TEXT))

    detail = client.get(f"/prescriptions/{prescription_id}", headers=auth_headers("user-a"))
    assert detail.status_code == 200
    assert detail.json()["analysis"] is None

    care_plan = client.get(f"/prescriptions/{prescription_id}/care-plan", headers=auth_headers("user-a"))
    assert care_plan.status_code == 404
    assert care_plan.json() == {"error": "Prescription analysis not found"}


def test_care_plan_is_built_from_stored_analysis(client, auth_headers, fake_model_text):
    fake_model_text(STRUCTURED_TEXT)
    created = _analyze(client, auth_headers("user-a"))

    response = client.get(f"/prescriptions/{created['prescriptionId']}/care-plan", headers=auth_headers("user-a"))

    assert response.status_code == 200
    plan = response.json()
    assert plan["prescriptionId"] == created["prescriptionId"]
    assert plan["todos"][0]["task"] == "Take Amoxicillin 500mg 3 times daily"
    assert plan["needsWorkout"] is False
    assert plan["workoutPlan"]["title"] == "Upper Respiratory Tract Infection Workout Plan"
    assert plan["sideEffects"][0]["medication"] == "Amoxicillin"


def test_history_requires_authorization(client):
    response = client.get("/prescriptions")
    assert response.status_code == 400
    assert "error" in response.json()


def test_medication_info_endpoint(client, auth_headers):
    response = client.get("/medications/LISINOPRIL/info", headers=auth_headers("user-a"))
    assert response.status_code == 200
    assert response.json()["name"] == "Lisinopril"
    assert "Dry, persistent cough" in response.json()["sideEffects"]


def test_gemini_proxy_routes_text_and_vision_requests(client, auth_headers, backend_module, monkeypatch):
    calls: list[dict] = []

    def fake_complete(**kwargs):
        calls.append(kwargs)
        return "Generated answer" if kwargs["prompt"] else ""

    monkeypatch.setattr(backend_module.container.gemini, "complete", fake_complete)

    text = client.post("/gemini-ai", headers=auth_headers("user-a"), json={"prompt": "Explain ibuprofen"})
    vision = client.post(
        "/gemini-ai",
        headers=auth_headers("user-a"),
        json={"type": "vision", "image": IMAGE},
    )

    assert text.json() == {"result": "Generated answer"}
    assert vision.json() == {"result": "No response generated"}
    assert calls[0] == {"prompt": "Explain ibuprofen", "image": None, "vision": False}
    assert calls[1] == {"prompt": None, "image": IMAGE, "vision": True}


def test_gemini_proxy_requires_prompt_or_image(client, auth_headers):
    response = client.post("/gemini-ai", headers=auth_headers("user-a"), json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Request must include either a prompt or an image"}

    image_only = client.post("/gemini-ai", headers=auth_headers("user-a"), json={"image": IMAGE})
    assert image_only.status_code == 400


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_history_read_failure_returns_json_error(client, auth_headers, backend_module):
    backend_module.container.store.ensure_user("user-a")
    with backend_module.container.db.connection() as conn:
        conn.execute("DROP TABLE prescription_analyses")
        conn.execute("DROP TABLE prescriptions")

    listing = client.get("/prescriptions", headers=auth_headers("user-a"))
    detail = client.get("/prescriptions/rx_missing", headers=auth_headers("user-a"))

    for response in (listing, detail):
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.headers["access-control-allow-origin"] == "*"
    assert listing.json() == {"error": "Failed to load prescriptions"}
    assert detail.json() == {"error": "Failed to load prescription"}


def test_unhandled_error_returns_json_error(backend_module, auth_headers, monkeypatch):
    def broken_listing(user_id: str) -> list[dict]:
        raise RuntimeError("disk gone")

    monkeypatch.setattr(backend_module.container.store, "list_prescriptions", broken_listing)

    with TestClient(backend_module.app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/prescriptions", headers=auth_headers("user-a"))

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert response.headers["access-control-allow-origin"] == "*"
