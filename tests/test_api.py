import json

from sqlmodel import select

from src.portal.models.application import InternshipApplication
from src.portal.models.application_progress import ApplicationProgress
from src.portal.models.notification import Notification

from tests.conftest import auth_headers, sign_payment, sign_webhook

APPLICATION_BODY = {
    "name": "Asha Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "college": "City Engineering College",
    "preferred_domain": "Web Development",
    "duration": 3,
}


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
    assert client.get("/").json()["docs_url"] == "/docs"


def test_authentication_required(client):
    assert client.get("/api/applications/me").status_code == 401


def test_admin_routes_reject_students(client, student):
    response = client.get("/api/admin/applications", headers=auth_headers(student))
    assert response.status_code == 403


def test_submit_and_duplicate(client, student):
    headers = auth_headers(student)
    response = client.post("/api/applications", json=APPLICATION_BODY, headers=headers)
    assert response.status_code == 201
    assert response.json()["amount"] == 599
    assert response.json()["status"] == "New"

    duplicate = client.post("/api/applications", json=APPLICATION_BODY, headers=headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["error_code"] == "DUPLICATE_ACTIVE_APPLICATION"
    assert duplicate.json()["details"]["application_id"] == response.json()["id"]


def test_invalid_email_is_rejected(client, student):
    body = {**APPLICATION_BODY, "email": "not-an-email"}
    assert client.post("/api/applications", json=body, headers=auth_headers(student)).status_code == 422


def test_payment_flow(client, session, gateway, admin, student, make_coupon, make_program):
    make_program("Web Development")
    make_coupon("SAVE10")
    student_headers, admin_headers = auth_headers(student), auth_headers(admin)

    application_id = client.post("/api/applications", json=APPLICATION_BODY, headers=student_headers).json()["id"]

    early = client.post(
        "/api/payments/create-order", json={"application_id": application_id}, headers=student_headers
    )
    assert early.status_code == 400
    assert early.json()["error_code"] == "PAYMENT_NOT_ALLOWED"

    selected = client.patch(
        f"/api/admin/applications/{application_id}", json={"status": "Selected"}, headers=admin_headers
    )
    assert selected.status_code == 200

    preview = client.post(
        "/api/payments/validate-coupon", json={"code": "save10", "amount": 599}, headers=student_headers
    )
    assert preview.json()["final_amount"] == 540

    order = client.post(
        "/api/payments/create-order",
        json={"application_id": application_id, "coupon_code": "SAVE10"},
        headers=student_headers,
    ).json()
    assert order["amount"] == 54000
    assert order["key_id"] == gateway.key_id

    verify_body = {
        "razorpay_order_id": order["order_id"],
        "razorpay_payment_id": "pay_api_1",
        "razorpay_signature": sign_payment(order["order_id"], "pay_api_1"),
    }
    first = client.post("/api/payments/verify", json=verify_body, headers=student_headers)
    assert first.status_code == 200
    assert first.json()["payment_status"] == "Verified"
    assert first.json()["already_verified"] is False

    second = client.post("/api/payments/verify", json=verify_body, headers=student_headers)
    assert second.json()["already_verified"] is True

    usage = client.get("/api/admin/coupons/usage", headers=admin_headers).json()
    assert len(usage) == 1
    assert usage[0]["discount_amount"] == 59

    enrollments = client.get("/api/lms/enrollments", headers=student_headers).json()
    assert len(enrollments) == 1


def test_forged_signature(client, student, selected_application):
    headers = auth_headers(student)
    order = client.post(
        "/api/payments/create-order", json={"application_id": str(selected_application.id)}, headers=headers
    ).json()
    response = client.post(
        "/api/payments/verify",
        json={"razorpay_order_id": order["order_id"], "razorpay_payment_id": "pay_x", "razorpay_signature": "bad"},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_SIGNATURE"


def test_webhook_endpoint(client, session, student, selected_application):
    order = client.post(
        "/api/payments/create-order",
        json={"application_id": str(selected_application.id)},
        headers=auth_headers(student),
    ).json()
    body = json.dumps({
        "event": "payment.captured",
        "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": order["order_id"]}}},
    }).encode()

    rejected = client.post("/api/payments/webhook", content=body, headers={"X-Razorpay-Signature": "nope"})
    assert rejected.status_code == 400

    accepted = client.post(
        "/api/payments/webhook",
        content=body,
        headers={"X-Razorpay-Signature": sign_webhook(body), "Content-Type": "application/json"},
    )
    assert accepted.json() == {"status": "ok", "processed": True}

    application = session.get(InternshipApplication, selected_application.id)
    session.refresh(application)
    assert application.transaction_id == "pay_hook"


def test_document_issue_and_public_verification(client, session, admin, documented_application, renderer, storage):
    admin_headers = auth_headers(admin)
    session.add(ApplicationProgress(
        application_id=documented_application.id,
        user_id=documented_application.user_id,
        is_eligible_for_certificate=True,
    ))
    session.commit()

    issued = client.post(
        f"/api/admin/applications/{documented_application.id}/documents/core", headers=admin_headers
    )
    assert issued.status_code == 200
    assert issued.json()["status"] == "Approved"
    verification_id = issued.json()["verification_id"]

    public = client.get(f"/api/documents/verify/{verification_id}").json()
    assert public["documents"] == {}

    client.patch(
        f"/api/admin/applications/{documented_application.id}/documents/certificate/visibility",
        json={"visible": True},
        headers=admin_headers,
    )
    public = client.get(f"/api/documents/verify/{verification_id}").json()
    assert list(public["documents"]) == ["certificate"]

    assert client.get("/api/documents/verify/COS-0-000").status_code == 404


def test_document_failure_body(client, admin, documented_application, storage):
    storage.fail_names.add("loc")
    response = client.post(
        f"/api/admin/applications/{documented_application.id}/documents/loc", headers=auth_headers(admin)
    )
    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "DOCUMENT_GENERATION_FAILED"
    assert body["details"]["step"] == "upload"


def test_unknown_document_kind(client, admin, documented_application):
    response = client.post(
        f"/api/admin/applications/{documented_application.id}/documents/resume", headers=auth_headers(admin)
    )
    assert response.status_code == 422


def test_notifications(client, session, admin, student, other_student, make_application):
    application = make_application(student)
    client.patch(
        f"/api/admin/applications/{application.id}", json={"status": "Reviewed"}, headers=auth_headers(admin)
    )

    notifications = client.get("/api/notifications", headers=auth_headers(student)).json()
    assert len(notifications) == 1
    notification_id = notifications[0]["id"]

    stranger = client.patch(f"/api/notifications/{notification_id}/read", headers=auth_headers(other_student))
    assert stranger.status_code == 401

    read = client.patch(f"/api/notifications/{notification_id}/read", headers=auth_headers(student))
    assert read.json()["is_read"] is True

    assert client.delete("/api/notifications", headers=auth_headers(student)).json() == {"cleared": 1}
    assert session.exec(select(Notification)).all() == []


def test_lms_certificate_over_http(client, admin, student, make_program):
    program, _, activities = make_program("Data Science", activities=1)
    admin_headers, student_headers = auth_headers(admin), auth_headers(student)

    client.post("/api/applications", json={**APPLICATION_BODY, "preferred_domain": "Data Science"},
                headers=student_headers)
    application_id = client.get("/api/applications/me", headers=student_headers).json()[0]["id"]
    client.patch(f"/api/admin/applications/{application_id}", json={"status": "Selected"}, headers=admin_headers)
    enrollment_id = client.get("/api/lms/enrollments", headers=student_headers).json()[0]["id"]

    early = client.post(f"/api/admin/lms/enrollments/{enrollment_id}/certificate", headers=admin_headers)
    assert early.status_code == 400
    assert early.json()["detail"] == "Program not yet completed"

    submitted = client.put(
        f"/api/lms/activities/{activities[0].id}/progress",
        json={"status": "Pending Approval", "submission_content": "notebook.ipynb"},
        headers=student_headers,
    ).json()
    client.patch(
        f"/api/admin/lms/submissions/{submitted['id']}",
        json={"status": "Completed", "marks": 75},
        headers=admin_headers,
    )

    issued = client.post(f"/api/admin/lms/enrollments/{enrollment_id}/certificate", headers=admin_headers)
    assert issued.status_code == 201
    certificate_id = issued.json()["certificate_id"]

    again = client.post(f"/api/admin/lms/enrollments/{enrollment_id}/certificate", headers=admin_headers)
    assert again.json()["error_code"] == "CERTIFICATE_ALREADY_ISSUED"

    public = client.get(f"/api/lms/verify-lms/{certificate_id}").json()
    assert public["program_title"] == program.title


def test_task_submission_flow(client, admin, student, make_application):
    admin_headers, student_headers = auth_headers(admin), auth_headers(student)
    application = make_application(student)

    assert client.post(
        "/api/activity/tasks",
        json={"title": "Landing page", "description": "Build it", "type": "Link",
              "internship_domain": "Web Development"},
        headers=student_headers,
    ).status_code == 403
    task = client.post(
        "/api/activity/tasks",
        json={"title": "Landing page", "description": "Build it", "type": "Link",
              "internship_domain": "Web Development"},
        headers=admin_headers,
    ).json()

    tasks = client.get("/api/activity/tasks", params={"domain": "web development"}, headers=student_headers)
    assert [t["id"] for t in tasks.json()] == [task["id"]]

    submission = client.post(
        "/api/activity/submissions",
        json={"task_id": task["id"], "application_id": str(application.id), "content": "https://example.com"},
        headers=student_headers,
    )
    assert submission.status_code == 201

    evaluated = client.put(
        f"/api/activity/submissions/{submission.json()['id']}/evaluate",
        json={"status": "Approved", "marks": 85},
        headers=admin_headers,
    )
    assert evaluated.json()["status"] == "Approved"

    progress = client.get(f"/api/activity/progress/{application.id}", headers=student_headers).json()
    assert progress["progress_percentage"] == 100
    assert progress["completed_tasks_count"] == 1
    assert progress["is_eligible_for_certificate"] is False
