import unittest

from starlette.requests import Request
from starlette.responses import Response

from server.formgate.csrf import CSRF_COOKIE_NAME, CsrfError, CsrfGuard, is_safe_method


def _request(method: str = "GET", cookie: str | None = None) -> Request:
    headers = []
    if cookie is not None:
        headers.append((b"cookie", f"{CSRF_COOKIE_NAME}={cookie}".encode("latin-1")))
    return Request({"type": "http", "method": method, "path": "/", "headers": headers, "query_string": b""})


class TestCsrfGuard(unittest.TestCase):
    def setUp(self) -> None:
        self.guard = CsrfGuard(b"k" * 32)

    def _issue_with_cookie(self) -> tuple[str, str]:
        request = _request()
        token = self.guard.issue(request)
        response = Response()
        self.guard.attach(response, request)
        set_cookie = response.headers["set-cookie"]
        cookie = set_cookie.split(";", 1)[0].split("=", 1)[1]
        return token, cookie

    def test_issue_sets_signed_cookie(self) -> None:
        token, cookie = self._issue_with_cookie()
        self.assertTrue(token)
        self.assertIn(".", cookie)

    def test_issued_tokens_are_distinct_but_valid(self) -> None:
        _, cookie = self._issue_with_cookie()
        request = _request(cookie=cookie)
        first = self.guard.issue(request)
        second = self.guard.issue(request)
        self.assertNotEqual(first, second)
        self.guard.validate(_request("POST", cookie=cookie), first)
        self.guard.validate(_request("POST", cookie=cookie), second)

    def test_existing_cookie_is_not_rewritten(self) -> None:
        _, cookie = self._issue_with_cookie()
        request = _request(cookie=cookie)
        self.guard.issue(request)
        response = Response()
        self.guard.attach(response, request)
        self.assertNotIn("set-cookie", response.headers)

    def test_missing_token(self) -> None:
        _, cookie = self._issue_with_cookie()
        with self.assertRaisesRegex(CsrfError, "missing token"):
            self.guard.validate(_request("POST", cookie=cookie), None)

    def test_missing_cookie(self) -> None:
        token, _ = self._issue_with_cookie()
        with self.assertRaisesRegex(CsrfError, "missing cookie"):
            self.guard.validate(_request("POST"), token)

    def test_token_from_other_context_is_rejected(self) -> None:
        _, cookie = self._issue_with_cookie()
        other_token, _ = self._issue_with_cookie()
        with self.assertRaisesRegex(CsrfError, "mismatch"):
            self.guard.validate(_request("POST", cookie=cookie), other_token)

    def test_malformed_token(self) -> None:
        _, cookie = self._issue_with_cookie()
        with self.assertRaisesRegex(CsrfError, "malformed"):
            self.guard.validate(_request("POST", cookie=cookie), "not-a-token")

    def test_tampered_cookie_counts_as_missing(self) -> None:
        token, cookie = self._issue_with_cookie()
        value, mac = cookie.split(".", 1)
        forged = f"{value}.{'A' * len(mac)}"
        with self.assertRaisesRegex(CsrfError, "missing cookie"):
            self.guard.validate(_request("POST", cookie=forged), token)

    def test_rotating_secret_invalidates_tokens(self) -> None:
        token, cookie = self._issue_with_cookie()
        rotated = CsrfGuard(b"r" * 32)
        with self.assertRaises(CsrfError):
            rotated.validate(_request("POST", cookie=cookie), token)

    def test_empty_secret_is_refused(self) -> None:
        with self.assertRaises(ValueError):
            CsrfGuard(b"")


class TestSafeMethods(unittest.TestCase):
    def test_safe_methods(self) -> None:
        self.assertTrue(is_safe_method("GET"))
        self.assertTrue(is_safe_method("head"))
        self.assertFalse(is_safe_method("POST"))
        self.assertFalse(is_safe_method("DELETE"))


if __name__ == "__main__":
    unittest.main()
