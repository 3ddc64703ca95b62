import unittest


class TestDaemonCoreOps(unittest.TestCase):
    def _call(self, msg_type: str, uptime: int = 3):
        from ccnotify.daemon.ops.daemon_core_ops import try_handle_daemon_core_op

        return try_handle_daemon_core_op(msg_type, version="1.0", uptime_provider=lambda: uptime)

    def test_ping_and_stop(self) -> None:
        ping = self._call("ping")
        assert ping is not None
        resp, should_stop = ping
        self.assertTrue(resp.ok)
        self.assertFalse(should_stop)
        self.assertEqual(resp.type, "ping")
        assert resp.ping is not None
        self.assertEqual(resp.ping.version, "1.0")
        self.assertEqual(resp.ping.uptime, 3)

        stop = self._call("stop")
        assert stop is not None
        resp, should_stop = stop
        self.assertTrue(resp.ok)
        self.assertTrue(should_stop)
        self.assertEqual(resp.type, "stop")

    def test_negative_clock_clamped(self) -> None:
        ping = self._call("ping", uptime=-5)
        assert ping is not None
        assert ping[0].ping is not None
        self.assertEqual(ping[0].ping.uptime, 0)

    def test_other_types_not_handled(self) -> None:
        self.assertIsNone(self._call("notify"))


if __name__ == "__main__":
    unittest.main()
