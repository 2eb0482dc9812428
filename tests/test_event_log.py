import unittest

from avsim.domain.decisions import LogEvent
from avsim.kernel.event_log import EventLog
from factories import pos


class TestEventLog(unittest.TestCase):
    def setUp(self):
        self.now = 1000.0
        self.log = EventLog(capacity=3, clock=lambda: self.now)

    def test_newest_first(self):
        self.log.add("AV-001", LogEvent.WAYPOINT_ADDED, "first", pos(0, 0))
        self.now += 1
        self.log.add("AV-002", LogEvent.REROUTE, "second", pos(1, 1))
        logs = self.log.get_logs()
        self.assertEqual([e.details for e in logs], ["second", "first"])
        self.assertEqual(logs[0].timestamp, 1001000.0)

    def test_capacity_drops_oldest(self):
        for i in range(5):
            self.log.add("AV-001", LogEvent.REROUTE, str(i), pos(0, 0))
        self.assertEqual(len(self.log), 3)
        self.assertEqual([e.details for e in self.log.get_logs()], ["4", "3", "2"])

    def test_filter_and_clear(self):
        self.log.add("AV-001", LogEvent.REROUTE, "a", pos(0, 0))
        self.log.add("AV-002", LogEvent.REROUTE, "b", pos(0, 0))
        self.assertEqual([e.details for e in self.log.for_vehicle("AV-002")], ["b"])
        self.log.clear()
        self.assertEqual(self.log.get_logs(), [])


if __name__ == '__main__':
    unittest.main()
