import unittest
from unittest.mock import MagicMock, Mock, patch

from feepulse import APP_NAME
from feepulse.models import AlertEvent
from feepulse.notifications import NotificationManager

EVENT = AlertEvent(kind='low_fee', title='Low fees!', message='Fastest fee dropped to 4.0 sat/vB',
                   icon_hint='dialog-information', value=4.0)


class TestNotificationManager(unittest.TestCase):

    def setUp(self):
        self.plyer_patcher = patch('feepulse.notifications.notification', MagicMock())
        self.mock_plyer = self.plyer_patcher.start()

    def tearDown(self):
        self.plyer_patcher.stop()

    def test_plyer_success(self):
        manager = NotificationManager(duration=7)

        self.assertEqual(manager.notify(EVENT), 'plyer')
        self.mock_plyer.notify.assert_called_once_with(
            title='Low fees!', message='Fastest fee dropped to 4.0 sat/vB',
            app_name=APP_NAME, timeout=7,
        )
        self.assertEqual(manager.get_stats()['by_backend']['plyer'], 1)

    def test_plyer_fails_popup_succeeds(self):
        self.mock_plyer.notify.side_effect = NotImplementedError('no backend')
        popup = Mock(return_value=True)
        manager = NotificationManager(popup=popup)

        self.assertEqual(manager.notify(EVENT), 'popup')
        popup.assert_called_once_with('Low fees!', 'Fastest fee dropped to 4.0 sat/vB', 5)

    def test_falls_back_to_log(self):
        self.mock_plyer.notify.side_effect = Exception('dbus unavailable')
        manager = NotificationManager(popup=Mock(return_value=False))

        with self.assertLogs('feepulse.notifications', level='WARNING'):
            self.assertEqual(manager.notify(EVENT), 'log')
        self.assertEqual(manager.backend_order(), ['plyer', 'popup', 'log'])

    def test_repeated_alerts_are_all_delivered(self):
        manager = NotificationManager()
        for _ in range(3):
            manager.notify(EVENT)
        self.assertEqual(self.mock_plyer.notify.call_count, 3)
        self.assertEqual(manager.get_stats()['success'], 3)

    def test_disabled(self):
        manager = NotificationManager(enabled=False)
        self.assertIsNone(manager.notify(EVENT))
        self.mock_plyer.notify.assert_not_called()
        stats = manager.get_stats()
        self.assertEqual((stats['total_attempts'], stats['disabled']), (1, 1))

    def test_long_text_is_truncated(self):
        manager = NotificationManager()
        manager.send('t' * 300, 'm' * 900)
        kwargs = self.mock_plyer.notify.call_args.kwargs
        self.assertEqual(len(kwargs['title']), 100)
        self.assertEqual(len(kwargs['message']), 500)


if __name__ == '__main__':
    unittest.main()
