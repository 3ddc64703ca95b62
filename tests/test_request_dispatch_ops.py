import unittest


class TestRequestDispatch(unittest.TestCase):
    def _deps(self, *, post=None, new_id=None):
        from ccnotify.daemon.request_dispatch_ops import RequestDispatchDeps
        from ccnotify.daemon.socket_protocol_ops import error

        self.posted = []

        def _post(notify):
            self.posted.append(notify)
            return 0

        return RequestDispatchDeps(
            version="9.9.9",
            uptime_provider=lambda: 12,
            post_notification=post or _post,
            new_notification_id=new_id or (lambda: 424242),
            error_factory=error,
        )

    def _dispatch(self, raw, deps):
        from ccnotify.daemon.request_dispatch_ops import dispatch_request, parse_request

        return dispatch_request(parse_request(raw), deps=deps)

    def test_ping_reports_version_and_uptime(self) -> None:
        resp, should_exit = self._dispatch({"type": "ping", "version": "1.0"}, self._deps())
        self.assertTrue(resp.ok)
        self.assertFalse(should_exit)
        assert resp.ping is not None
        self.assertEqual(resp.ping.version, "9.9.9")
        self.assertEqual(resp.ping.uptime, 12)

    def test_stop_answers_then_requests_exit(self) -> None:
        resp, should_exit = self._dispatch({"type": "stop", "version": "1.0"}, self._deps())
        self.assertTrue(resp.ok)
        self.assertTrue(should_exit)
        self.assertIsNotNone(resp.ping)

    def test_notify_uses_generated_id_when_backend_reports_none(self) -> None:
        deps = self._deps()
        resp, should_exit = self._dispatch(
            {"type": "notify", "version": "1.0", "notify": {"title": "Done", "body": "task finished"}},
            deps,
        )
        self.assertFalse(should_exit)
        assert resp.notify is not None
        self.assertTrue(resp.notify.success)
        self.assertEqual(resp.notify.notification_id, 424242)
        self.assertEqual([n.title for n in self.posted], ["Done"])

    def test_notify_prefers_os_id(self) -> None:
        deps = self._deps(post=lambda notify: 31)
        resp, _ = self._dispatch({"type": "notify", "version": "1.0", "notify": {"title": "t"}}, deps)
        assert resp.notify is not None
        self.assertEqual(resp.notify.notification_id, 31)

    def test_backend_failure_is_error_response(self) -> None:
        from ccnotify.errors import NotifyFailed

        def _fail(notify):
            raise NotifyFailed("org.freedesktop.Notifications not available")

        resp, should_exit = self._dispatch(
            {"type": "notify", "version": "1.0", "notify": {"title": "t"}},
            self._deps(post=_fail),
        )
        self.assertFalse(resp.ok)
        self.assertFalse(should_exit)
        self.assertEqual(resp.code, "notify_failed")
        self.assertIsNone(resp.notify)

    def test_version_mismatch_rejected_before_payload_validation(self) -> None:
        from ccnotify.daemon.request_dispatch_ops import parse_request
        from ccnotify.errors import VersionMismatch

        for raw in (
            {"type": "ping", "version": "0.9"},
            {"type": "ping"},
            {"type": "notify", "version": "2.0", "notify": {"unexpected": True}},
        ):
            with self.subTest(raw=raw):
                with self.assertRaises(VersionMismatch) as ctx:
                    parse_request(raw)
                self.assertEqual(ctx.exception.daemon_version, "1.0")

    def test_non_object_request_rejected(self) -> None:
        from ccnotify.daemon.request_dispatch_ops import parse_request

        with self.assertRaises(ValueError):
            parse_request(["ping"])

    def test_version_mismatch_maps_to_error_code(self) -> None:
        from ccnotify.daemon.server import _make_invalid_request_error
        from ccnotify.errors import VersionMismatch

        resp = _make_invalid_request_error(VersionMismatch("0.9", "1.0"))
        self.assertEqual(resp.code, "version_mismatch")
        self.assertIn("daemon=1.0", resp.error)

        resp = _make_invalid_request_error(ValueError("bad"))
        self.assertEqual(resp.code, "invalid_request")

    def test_generated_ids_are_positive_31_bit(self) -> None:
        from ccnotify.daemon.server import new_notification_id

        for _ in range(200):
            n = new_notification_id()
            self.assertGreater(n, 0)
            self.assertLessEqual(n, 0x7FFFFFFF)


if __name__ == "__main__":
    unittest.main()
