"""
Tests for API Endpoints

Runs the app on the in-memory store; the LLM extractor and the push
channel are replaced through dependency overrides.
"""

import uuid

import pytest
from starlette.websockets import WebSocketDisconnect

from cardvault.core.identity import sign_identity
from cardvault.core.security import create_access_token
from cardvault.schemas.extraction import EmailAnalysis, EmailChange, ExtractedTransaction

from conftest import CARD_PAYLOAD, create_card, login


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAuth:
    def test_login_returns_token_for_signed_identity(self, client):
        token = login(client, "carol-003", email="carol@example.com", first_name="Carol")

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        body = response.json()
        assert body["externalId"] == "carol-003"
        assert body["email"] == "carol@example.com"
        assert body["firstName"] == "Carol"

    def test_login_twice_is_the_same_user(self, client):
        first = login(client, "carol-003")
        second = login(client, "carol-003", first_name="Carol")

        me_first = client.get("/auth/me", headers={"Authorization": f"Bearer {first}"}).json()
        me_second = client.get("/auth/me", headers={"Authorization": f"Bearer {second}"}).json()
        assert me_first["id"] == me_second["id"]

    def test_tampered_identity_is_rejected(self, client):
        response = client.post("/auth/login", json={"init_data": "id=carol-003&auth_date=1&hash=deadbeef"})
        assert response.status_code == 401

    def test_missing_token(self, client):
        response = client.get("/api/cards")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized", "detail": "Missing token"}

    def test_garbage_token(self, client):
        response = client.get("/api/cards", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_token_for_unknown_user(self, client):
        token = create_access_token({"sub": "no-such-user"})
        response = client.get("/api/cards", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_malformed_email_claim_is_rejected(self, client):
        init_data = sign_identity({"id": "carol-003", "email": "not-an-email"})
        response = client.post("/auth/login", json={"init_data": init_data})
        assert response.status_code == 400
        assert response.json() == {"error": "Bad Request", "detail": "Invalid identity claims: email"}


class TestCards:
    def test_create_and_list(self, client, alice):
        card = create_card(client, alice)
        assert card["currentBalance"] == "0.00"
        assert card["creditLimit"] == "100000.00"
        assert card["cardColor"] == "#8B5CF6"

        listed = client.get("/api/cards", headers=alice).json()
        assert [c["id"] for c in listed] == [card["id"]]

    def test_invalid_last_four(self, client, alice):
        response = client.post("/api/cards", json={**CARD_PAYLOAD, "lastFourDigits": "12a4"}, headers=alice)
        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["body", "lastFourDigits"]

    def test_patch(self, client, alice):
        card = create_card(client, alice)
        response = client.patch(f"/api/cards/{card['id']}", json={"cardName": "Regalia"}, headers=alice)
        assert response.status_code == 200
        assert response.json()["cardName"] == "Regalia"
        assert response.json()["bankName"] == "ICICI"

    def test_other_user_gets_404(self, client, alice, bob):
        card = create_card(client, alice)

        assert client.get(f"/api/cards/{card['id']}", headers=bob).status_code == 404
        assert client.patch(f"/api/cards/{card['id']}", json={"cardName": "x"}, headers=bob).status_code == 404
        assert client.delete(f"/api/cards/{card['id']}", headers=bob).status_code == 404
        assert client.get("/api/cards", headers=bob).json() == []
        assert client.get(f"/api/cards/{card['id']}", headers=alice).status_code == 200

    def test_delete(self, client, alice):
        card = create_card(client, alice)
        response = client.delete(f"/api/cards/{card['id']}", headers=alice)
        assert response.json() == {"success": True}
        assert client.get(f"/api/cards/{card['id']}", headers=alice).status_code == 404


class TestManualTransactions:
    def test_end_to_end(self, client, alice):
        card = create_card(client, alice)
        reward = client.post("/api/rewards", json={
            "cardId": card["id"],
            "rewardType": "cashback",
            "rewardValue": "₹250 cashback",
            "condition": "Spend ₹5000",
            "threshold": "5000",
        }, headers=alice)
        assert reward.status_code == 201

        response = client.post("/api/transactions", json={
            "cardId": card["id"],
            "merchantName": "Amazon",
            "amount": "1500",
            "category": "Shopping",
        }, headers=alice)
        assert response.status_code == 201
        transaction = response.json()
        assert transaction["amount"] == "1500.00"
        assert transaction["source"] == "manual"

        card_after = client.get(f"/api/cards/{card['id']}", headers=alice).json()
        assert card_after["currentBalance"] == "1500.00"

        notifications = client.get("/api/notifications", headers=alice).json()
        assert len(notifications) == 1
        assert notifications[0]["type"] == "transaction"
        assert "1500" in notifications[0]["message"]
        assert "Amazon" in notifications[0]["message"]
        assert notifications[0]["isRead"] is False

        progress = client.get("/api/rewards", params={"cardId": card["id"]}, headers=alice).json()
        assert progress[0]["currentProgress"] == "1500.00"

    def test_non_positive_amount_rejected(self, client, alice):
        card = create_card(client, alice)
        response = client.post("/api/transactions", json={
            "cardId": card["id"], "merchantName": "Amazon", "amount": "0", "category": "Shopping",
        }, headers=alice)
        assert response.status_code == 422

    def test_unknown_category_rejected(self, client, alice):
        card = create_card(client, alice)
        response = client.post("/api/transactions", json={
            "cardId": card["id"], "merchantName": "Amazon", "amount": "10", "category": "Crypto",
        }, headers=alice)
        assert response.status_code == 422

    def test_foreign_card_is_404_and_writes_nothing(self, client, alice, bob):
        card = create_card(client, alice)
        response = client.post("/api/transactions", json={
            "cardId": card["id"], "merchantName": "Amazon", "amount": "10", "category": "Shopping",
        }, headers=bob)

        assert response.status_code == 404
        assert client.get("/api/transactions", headers=alice).json() == []
        assert client.get(f"/api/cards/{card['id']}", headers=alice).json()["currentBalance"] == "0.00"

    def test_edit_and_delete(self, client, alice):
        card = create_card(client, alice)
        created = client.post("/api/transactions", json={
            "cardId": card["id"], "merchantName": "Amazon", "amount": "100", "category": "Shopping",
        }, headers=alice).json()

        edited = client.patch(f"/api/transactions/{created['id']}", json={"amount": "250"}, headers=alice)
        assert edited.status_code == 200
        assert client.get(f"/api/cards/{card['id']}", headers=alice).json()["currentBalance"] == "250.00"

        assert client.delete(f"/api/transactions/{created['id']}", headers=alice).json() == {"success": True}
        assert client.get(f"/api/cards/{card['id']}", headers=alice).json()["currentBalance"] == "0.00"

    @pytest.mark.parametrize("amount", ["1e30", "1e11", "0.004", "10.999"])
    def test_amount_outside_the_money_column_rejected(self, client, alice, amount):
        card = create_card(client, alice)
        response = client.post("/api/transactions", json={
            "cardId": card["id"], "merchantName": "Amazon", "amount": amount, "category": "Shopping",
        }, headers=alice)

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["body", "amount"]
        assert client.get("/api/transactions", headers=alice).json() == []

    def test_huge_credit_limit_and_tiny_threshold_rejected(self, client, alice):
        limit = client.post("/api/cards", json={**CARD_PAYLOAD, "creditLimit": "1e40"}, headers=alice)
        assert limit.status_code == 422

        card = create_card(client, alice)
        threshold = client.post("/api/rewards", json={
            "cardId": card["id"], "rewardType": "cashback", "rewardValue": "₹10",
            "condition": "Spend", "threshold": "0.001",
        }, headers=alice)
        assert threshold.status_code == 422


class TestSmsParsing:
    def test_parse_sms(self, client, alice, extractor):
        create_card(client, alice, lastFourDigits="1234")
        second = create_card(client, alice, lastFourDigits="5678", cardName="HDFC Millennia")
        extractor.transaction = ExtractedTransaction(
            merchant_name="Swiggy", amount="450", category="Food", last_four_digits="5678"
        )

        response = client.post("/api/parse-sms", json={
            "phoneNumber": "AX-HDFCBK",
            "message": "Rs.450 spent on HDFC card XX5678 at Swiggy",
        }, headers=alice)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["transaction"]["cardId"] == second["id"]
        assert body["transaction"]["source"] == "sms"
        assert extractor.sms_seen == ["Rs.450 spent on HDFC card XX5678 at Swiggy"]

    def test_unparseable_sms_is_422_and_still_logged(self, client, alice, extractor):
        create_card(client, alice)
        extractor.transaction = None

        response = client.post("/api/parse-sms", json={
            "phoneNumber": "AX-HDFCBK", "message": "Your OTP is 123456",
        }, headers=alice)

        assert response.status_code == 422
        assert response.json()["detail"] == "Could not extract transaction from SMS"
        logged = client.get("/api/sms", headers=alice).json()
        assert len(logged) == 1
        assert logged[0]["processed"] is True
        assert logged[0]["extractedData"] is None
        assert client.get("/api/transactions", headers=alice).json() == []

    def test_no_card_is_400(self, client, alice, extractor):
        extractor.transaction = ExtractedTransaction(merchant_name="Swiggy", amount="450")

        response = client.post("/api/parse-sms", json={
            "phoneNumber": "AX-HDFCBK", "message": "Rs.450 at Swiggy",
        }, headers=alice)

        assert response.status_code == 400
        assert response.json()["detail"] == "No card found to associate transaction with"

    def test_sms_log_is_per_user(self, client, alice, bob, extractor):
        create_card(client, alice)
        extractor.transaction = ExtractedTransaction(merchant_name="Swiggy", amount="450")
        client.post("/api/parse-sms", json={"phoneNumber": "AX", "message": "Rs.450"}, headers=alice)

        assert len(client.get("/api/sms", headers=alice).json()) == 1
        assert client.get("/api/sms", headers=bob).json() == []


class TestNotifications:
    def test_mark_as_read(self, client, alice, bob):
        card = create_card(client, alice)
        created = client.post("/api/notifications", json={
            "cardId": card["id"], "title": "Heads up", "message": "Bill due soon", "type": "bill",
        }, headers=alice).json()

        assert client.patch(f"/api/notifications/{created['id']}/read", headers=bob).status_code == 404
        response = client.patch(f"/api/notifications/{created['id']}/read", headers=alice)
        assert response.status_code == 200
        assert response.json()["isRead"] is True


class TestEmailDigest:
    def test_only_card_related_emails_become_notifications(self, client, alice, extractor):
        extractor.analyses = {
            "Your October statement": EmailAnalysis(type="statement", summary="Statement is ready"),
            "Your bill is due": EmailAnalysis(
                type="bill", summary="Pay before the due date", bill_amount="12,450", due_date="5 Nov"
            ),
            "New fuel offer": EmailAnalysis(
                type="offer", summary="Fuel surcharge waiver increased",
                changes=[EmailChange(field="fuel surcharge waiver", old_value="1%", new_value="2%")],
            ),
            "Newsletter": EmailAnalysis(type="other", summary="Nothing card related"),
        }
        emails = [
            {"id": f"e{i}", "subject": subject, "body": "...", "from": "alerts@bank.example"}
            for i, subject in enumerate(list(extractor.analyses) + ["Unreadable"])
        ]

        response = client.post("/api/parse-emails", json={"emails": emails}, headers=alice)

        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 3, "total": 5}

        notifications = client.get("/api/notifications", headers=alice).json()
        by_type = {n["type"]: n for n in notifications}
        assert set(by_type) == {"statement", "bill", "offer"}
        assert by_type["bill"]["message"].startswith("Bill of ₹12,450 due on 5 Nov.")
        assert by_type["offer"]["title"] == "New Offer Available"
        assert by_type["offer"]["metadata"]["changes"][0]["newValue"] == "2%"
        assert by_type["offer"]["metadata"]["from"] == "alerts@bank.example"


class TestBills:
    def _bill(self, client, headers, card_id, amount="10000", minimum="500"):
        response = client.post("/api/bills", json={
            "cardId": card_id,
            "amount": amount,
            "dueDate": "2026-11-05T00:00:00Z",
            "billMonth": "2026-10",
            "minimumDue": minimum,
        }, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    def test_pay_bill(self, client, alice):
        card = create_card(client, alice)
        bill = self._bill(client, alice, card["id"])

        too_little = client.post(f"/api/bills/{bill['id']}/pay", json={
            "amount": "200", "paymentMethod": "UPI",
        }, headers=alice)
        assert too_little.status_code == 400

        paid = client.post(f"/api/bills/{bill['id']}/pay", json={"paymentMethod": "UPI"}, headers=alice)
        assert paid.status_code == 201
        assert paid.json()["amount"] == "10000.00"

        again = client.post(f"/api/bills/{bill['id']}/pay", json={"paymentMethod": "UPI"}, headers=alice)
        assert again.status_code == 400
        assert again.json()["detail"] == "Bill is already paid"

        assert client.get("/api/bills", headers=alice).json()[0]["status"] == "paid"
        assert len(client.get("/api/payments", headers=alice).json()) == 1
        notifications = client.get("/api/notifications", headers=alice).json()
        assert [n["type"] for n in notifications] == ["payment"]
        # payments are bookkeeping only
        assert client.get(f"/api/cards/{card['id']}", headers=alice).json()["currentBalance"] == "0.00"

    def test_minimum_due_above_amount_rejected(self, client, alice):
        card = create_card(client, alice)
        response = client.post("/api/bills", json={
            "cardId": card["id"], "amount": "100", "dueDate": "2026-11-05T00:00:00Z",
            "billMonth": "2026-10", "minimumDue": "500",
        }, headers=alice)
        assert response.status_code == 422

    def test_other_users_bill(self, client, alice, bob):
        card = create_card(client, alice)
        bill = self._bill(client, alice, card["id"])

        response = client.post(f"/api/bills/{bill['id']}/pay", json={"paymentMethod": "UPI"}, headers=bob)
        assert response.status_code == 404
        assert client.get("/api/bills", headers=bob).json() == []

    def test_sub_cent_payment_rejected(self, client, alice):
        card = create_card(client, alice)
        bill = self._bill(client, alice, card["id"], minimum="0")

        response = client.post(f"/api/bills/{bill['id']}/pay", json={
            "amount": "0.004", "paymentMethod": "UPI",
        }, headers=alice)
        assert response.status_code == 422
        assert client.get("/api/bills", headers=alice).json()[0]["status"] == "pending"


class TestAutopay:
    def test_put_twice_keeps_one_row(self, client, alice):
        card = create_card(client, alice)
        first = client.put(f"/api/cards/{card['id']}/autopay", json={"paymentMethod": "UPI"}, headers=alice)
        second = client.put(f"/api/cards/{card['id']}/autopay", json={
            "enabled": True, "paymentType": "full", "paymentMethod": "NetBanking",
        }, headers=alice)

        assert first.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["paymentType"] == "full"
        assert len(client.get("/api/autopay", headers=alice).json()) == 1

    def test_fixed_needs_an_amount(self, client, alice):
        card = create_card(client, alice)
        response = client.put(f"/api/cards/{card['id']}/autopay", json={
            "paymentType": "fixed", "paymentMethod": "UPI",
        }, headers=alice)
        assert response.status_code == 422

    def test_foreign_card(self, client, alice, bob):
        card = create_card(client, alice)
        response = client.put(f"/api/cards/{card['id']}/autopay", json={"paymentMethod": "UPI"}, headers=bob)
        assert response.status_code == 404


class TestForeignIds:
    """Another user's ids answer exactly like ids that don't exist."""

    def _assert_same_as_missing(self, send, foreign_id):
        missing_id = str(uuid.uuid4())
        foreign = send(foreign_id)
        missing = send(missing_id)

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json()["error"] == missing.json()["error"] == "Not Found"
        assert foreign.json()["detail"].replace(foreign_id, "<id>") == missing.json()["detail"].replace(missing_id, "<id>")

    def test_rewards(self, client, alice, bob):
        card = create_card(client, alice)
        reward = client.post("/api/rewards", json={
            "cardId": card["id"], "rewardType": "cashback", "rewardValue": "₹250",
            "condition": "Spend ₹5000", "threshold": "5000",
        }, headers=alice).json()

        self._assert_same_as_missing(
            lambda rid: client.patch(f"/api/rewards/{rid}", json={"isActive": False}, headers=bob), reward["id"]
        )
        self._assert_same_as_missing(lambda rid: client.delete(f"/api/rewards/{rid}", headers=bob), reward["id"])
        assert client.get("/api/rewards", headers=alice).json()[0]["isActive"] is True

    def test_transactions(self, client, alice, bob):
        card = create_card(client, alice)
        transaction = client.post("/api/transactions", json={
            "cardId": card["id"], "merchantName": "Amazon", "amount": "100", "category": "Shopping",
        }, headers=alice).json()

        self._assert_same_as_missing(
            lambda tid: client.patch(f"/api/transactions/{tid}", json={"amount": "1"}, headers=bob),
            transaction["id"],
        )
        self._assert_same_as_missing(
            lambda tid: client.delete(f"/api/transactions/{tid}", headers=bob), transaction["id"]
        )
        assert client.get(f"/api/cards/{card['id']}", headers=alice).json()["currentBalance"] == "100.00"

    def test_autopay_notifications_and_bills(self, client, alice, bob):
        card = create_card(client, alice)
        autopay = client.put(f"/api/cards/{card['id']}/autopay", json={"paymentMethod": "UPI"}, headers=alice).json()
        notification = client.post("/api/notifications", json={
            "cardId": card["id"], "title": "Heads up", "message": "Bill due soon", "type": "bill",
        }, headers=alice).json()
        bill = client.post("/api/bills", json={
            "cardId": card["id"], "amount": "1000", "dueDate": "2026-11-05T00:00:00Z",
            "billMonth": "2026-10", "minimumDue": "100",
        }, headers=alice).json()

        self._assert_same_as_missing(lambda aid: client.delete(f"/api/autopay/{aid}", headers=bob), autopay["id"])
        self._assert_same_as_missing(
            lambda nid: client.patch(f"/api/notifications/{nid}/read", headers=bob), notification["id"]
        )
        self._assert_same_as_missing(
            lambda bid: client.post(f"/api/bills/{bid}/pay", json={"paymentMethod": "UPI"}, headers=bob), bill["id"]
        )

        assert len(client.get("/api/autopay", headers=alice).json()) == 1
        assert client.get("/api/bills", headers=alice).json()[0]["status"] == "pending"


class TestCreditScores:
    def test_record_and_list(self, client, alice):
        response = client.post("/api/credit-scores", json={"score": 782, "provider": "CIBIL"}, headers=alice)
        assert response.status_code == 201
        assert [s["score"] for s in client.get("/api/credit-scores", headers=alice).json()] == [782]

    @pytest.mark.parametrize("score", [299, 901])
    def test_out_of_range(self, client, alice, score):
        response = client.post("/api/credit-scores", json={"score": score, "provider": "CIBIL"}, headers=alice)
        assert response.status_code == 422


class TestWebSocket:
    def test_missing_token_is_refused(self, client):
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect("/ws"):
                pass
        assert excinfo.value.code == 1008

    def test_bad_token_is_refused(self, client):
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect("/ws?token=not-a-jwt"):
                pass
        assert excinfo.value.code == 1008

    def test_unknown_user_is_refused(self, client):
        token = create_access_token({"sub": "no-such-user"})
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect(f"/ws?token={token}"):
                pass
        assert excinfo.value.code == 1008

    def test_notification_is_pushed_to_owner(self, client, alice, alice_token, broadcaster):
        card = create_card(client, alice)

        with client.websocket_connect(f"/ws?token={alice_token}") as ws:
            client.post("/api/transactions", json={
                "cardId": card["id"], "merchantName": "Amazon", "amount": "1500", "category": "Shopping",
            }, headers=alice)
            message = ws.receive_json()

        assert message["type"] == "notification"
        assert message["data"]["type"] == "transaction"
        assert message["data"]["title"] == "New Transaction"
        assert message["data"]["cardId"] == card["id"]
        assert message["data"]["read"] is False
