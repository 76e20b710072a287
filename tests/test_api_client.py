import json
import unittest
from unittest.mock import MagicMock

import requests

from api.client import (
    NOT_AUTHENTICATED_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    UNREACHABLE_MESSAGE,
    ApiClient,
    build_http_session,
)
from api.errors import (
    ConflictError,
    NotFoundError,
    ServerRejectedError,
    UnauthenticatedError,
    UnreachableError,
)

USER = {"id": "u1", "email": "ana@example.com", "name": "Ana"}


def fake_response(status=200, body=None, raw=None):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    if raw is not None:
        response.content = raw
        response.json.side_effect = ValueError("not json")
    elif body is None:
        response.content = b""
        response.json.side_effect = ValueError("empty")
    else:
        response.content = json.dumps(body).encode()
        response.json.return_value = body
    return response


class TestApiClient(unittest.TestCase):
    def setUp(self):
        self.http = MagicMock(spec=requests.Session)
        self.client = ApiClient("http://backend/api/", timeout=5, session=self.http)

    def _login(self):
        self.http.request.side_effect = [
            fake_response(200, {"token": "tok-123", "user": USER}),
            fake_response(200, {"user": USER,
                                "session": {"expiresAt": "2999-01-01T00:00:00Z"}}),
        ]
        self.client.login("ana@example.com", "secret")
        self.http.request.reset_mock()
        self.http.request.side_effect = None

    def test_login_keeps_token_and_user(self):
        self._login()
        self.assertTrue(self.client.is_authenticated)
        self.assertEqual(self.client.token, "tok-123")
        self.assertEqual(self.client.user["email"], "ana@example.com")

    def test_login_rejected(self):
        self.http.request.return_value = fake_response(401, {"error": "Credenciais inválidas"})
        with self.assertRaises(UnauthenticatedError) as ctx:
            self.client.login("ana@example.com", "wrong")
        self.assertEqual(str(ctx.exception), "Credenciais inválidas")
        self.assertFalse(self.client.is_authenticated)

    def test_request_without_session_sends_nothing(self):
        with self.assertRaises(UnauthenticatedError) as ctx:
            self.client.get("/data/pessoas")
        self.assertEqual(str(ctx.exception), NOT_AUTHENTICATED_MESSAGE)
        self.http.request.assert_not_called()

    def test_requests_carry_bearer_token(self):
        self._login()
        self.http.request.return_value = fake_response(200, {"pessoas": []})

        data = self.client.get("/data/pessoas", params={"x": "1"})

        self.assertEqual(data, {"pessoas": []})
        args, kwargs = self.http.request.call_args
        self.assertEqual(args, ("GET", "http://backend/api/data/pessoas"))
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok-123")
        self.assertEqual(kwargs["timeout"], 5)
        self.assertEqual(kwargs["params"], {"x": "1"})

    def test_idempotency_key_header(self):
        self._login()
        self.http.request.return_value = fake_response(201, {"gasto": {}})
        self.client.post("/data/gastos", {"id": "g1"}, idempotency_key="g1")
        headers = self.http.request.call_args.kwargs["headers"]
        self.assertEqual(headers["Idempotency-Key"], "g1")

    def test_401_clears_session(self):
        self._login()
        self.http.request.return_value = fake_response(401, {"error": "Token inválido"})

        with self.assertRaises(UnauthenticatedError) as ctx:
            self.client.get("/data/gastos")

        self.assertEqual(str(ctx.exception), SESSION_EXPIRED_MESSAGE)
        self.assertIsNone(self.client.token)
        self.assertFalse(self.client.is_authenticated)

    def test_connection_error_is_unreachable(self):
        self._login()
        self.http.request.side_effect = requests.ConnectionError("refused")

        with self.assertRaises(UnreachableError) as ctx:
            self.client.get("/data/gastos")

        self.assertEqual(str(ctx.exception), UNREACHABLE_MESSAGE)
        self.assertTrue(self.client.is_authenticated)

    def test_timeout_is_unreachable(self):
        self._login()
        self.http.request.side_effect = requests.Timeout("slow")
        with self.assertRaises(UnreachableError):
            self.client.get("/data/gastos")

    def test_server_message_is_propagated(self):
        self._login()
        self.http.request.return_value = fake_response(400, {"error": "Valor inválido"})

        with self.assertRaises(ServerRejectedError) as ctx:
            self.client.post("/data/gastos", {})

        self.assertEqual(ctx.exception.status, 400)
        self.assertEqual(ctx.exception.message, "Valor inválido")

    def test_missing_error_field_falls_back_to_status(self):
        self._login()
        self.http.request.return_value = fake_response(500, raw=b"<html>")
        with self.assertRaises(ServerRejectedError) as ctx:
            self.client.get("/data/gastos")
        self.assertEqual(ctx.exception.message, "HTTP 500")

    def test_not_found_and_conflict_kinds(self):
        self._login()
        self.http.request.return_value = fake_response(404, {"error": "Não encontrado"})
        with self.assertRaises(NotFoundError):
            self.client.delete("/data/gastos/x")

        self.http.request.return_value = fake_response(409, {"error": "Já existe"})
        with self.assertRaises(ConflictError):
            self.client.post("/data/gastos", {"id": "x"})

    def test_empty_body_is_empty_dict(self):
        self._login()
        self.http.request.return_value = fake_response(204)
        self.assertEqual(self.client.delete("/data/gastos/x"), {})

    def test_expired_session_is_not_authenticated(self):
        self._login()
        self.client.session_info = {"expiresAt": "2000-01-01T00:00:00Z"}
        self.assertTrue(self.client.is_session_expired())
        self.assertFalse(self.client.is_authenticated)

    def test_logout_clears_even_when_unreachable(self):
        self._login()
        self.http.request.side_effect = requests.ConnectionError("down")
        self.client.logout()
        self.assertIsNone(self.client.token)
        self.assertIsNone(self.client.user)


class TestHttpSession(unittest.TestCase):
    def test_retry_adapter_is_mounted(self):
        session = build_http_session(retries=4, backoff_factor=0.1)
        retry = session.get_adapter("https://backend/api").max_retries
        self.assertEqual(retry.total, 4)
        self.assertEqual(retry.backoff_factor, 0.1)
        self.assertIn(503, retry.status_forcelist)
        self.assertNotIn("POST", retry.allowed_methods)


if __name__ == "__main__":
    unittest.main()
