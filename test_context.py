import unittest
from unittest.mock import Mock

from feepulse.context import MonitorContext, UICollaborator
from feepulse.models import (
    AlertEvent,
    EventKind,
    FeeSnapshot,
    HistoryPoint,
    MarketSnapshot,
    PriceSnapshot,
)


def snapshot(timestamp):
    return MarketSnapshot(fees=FeeSnapshot(5, 4, 3, timestamp=timestamp), timestamp=timestamp)


class TestMonitorContext(unittest.TestCase):

    def test_single_update_slot(self):
        context = MonitorContext()
        self.assertTrue(context.try_begin_update())
        self.assertTrue(context.is_updating)
        self.assertFalse(context.try_begin_update())
        context.end_update()
        self.assertFalse(context.is_updating)
        self.assertTrue(context.try_begin_update())

    def test_apply_snapshot_only_appends_newer_points(self):
        context = MonitorContext(history_capacity=5)
        self.assertTrue(context.apply_snapshot(snapshot(10.0)))
        self.assertFalse(context.apply_snapshot(snapshot(10.0)))
        self.assertFalse(context.apply_snapshot(snapshot(5.0)))
        self.assertTrue(context.apply_snapshot(snapshot(11.0)))

        self.assertEqual([p.timestamp for p in context.history_points()], [10.0, 11.0])
        self.assertEqual(context.current.timestamp, 11.0)

    def test_seed_and_clear_history(self):
        context = MonitorContext(history_capacity=2)
        context.seed_history([HistoryPoint(float(ts), 1, 1, 1) for ts in range(4)])
        self.assertEqual([p.timestamp for p in context.history_points()], [2.0, 3.0])
        context.clear_history()
        self.assertEqual(context.history_points(), [])


class TestEventChannel(unittest.TestCase):

    def test_events_dispatch_to_matching_handlers(self):
        context = MonitorContext()
        fees = FeeSnapshot(1, 1, 1)
        price = PriceSnapshot(usd=1)
        alert = AlertEvent('low_fee', 'Low fees!', 'msg', 'dialog-information')
        context.post(EventKind.FEE, fees)
        context.post(EventKind.PRICE, price)
        context.post(EventKind.ALERT, alert)
        context.post_status('ready')

        collaborator = Mock()
        self.assertEqual(context.drain_events(collaborator), 4)

        collaborator.on_fee_update.assert_called_once_with(fees)
        collaborator.on_price_update.assert_called_once_with(price)
        collaborator.on_alert.assert_called_once_with(alert)
        collaborator.on_status.assert_called_once_with('ready')
        collaborator.on_mempool_update.assert_not_called()

    def test_drain_respects_max_events(self):
        context = MonitorContext()
        for i in range(5):
            context.post_status(str(i))
        self.assertEqual(context.drain_events(UICollaborator(), max_events=2), 2)
        self.assertEqual(context.events.qsize(), 3)

    def test_failing_handler_does_not_stop_draining(self):
        context = MonitorContext()
        context.post_status('first')
        context.post_status('second')
        collaborator = Mock()
        collaborator.on_status.side_effect = [RuntimeError('widget destroyed'), None]

        with self.assertLogs('feepulse.context', level='ERROR'):
            self.assertEqual(context.drain_events(collaborator), 2)
        self.assertEqual(collaborator.on_status.call_count, 2)


if __name__ == '__main__':
    unittest.main()
