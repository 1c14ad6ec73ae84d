#!/usr/bin/env python3
"""
Tests for notification channels and the channel factory.
"""

import os
import socket
import unittest
from unittest.mock import Mock, patch

import pytest
import requests

from database.uow import matching_uow
from notification import (
    EmailChannel,
    InAppChannel,
    NotificationChannel,
    NotificationChannelFactory,
    WebhookChannel,
)
from tests.factories import add_student

SMTP_ENV = {
    'SMTP_SERVER': 'smtp.example.com',
    'SMTP_PORT': '587',
    'SMTP_USERNAME': 'mailer@example.com',
    'SMTP_PASSWORD': 'password',
    'FROM_EMAIL': 'from@example.com',
}

PUBLIC_ADDRINFO = [(socket.AF_INET, socket.SOCK_STREAM, 6, '', ('93.184.216.34', 0))]
PRIVATE_ADDRINFO = [(socket.AF_INET, socket.SOCK_STREAM, 6, '', ('10.0.0.5', 0))]


class TestEmailChannel(unittest.TestCase):

    def test_validation_missing_config(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertFalse(EmailChannel().validate_config())

    def test_validation_with_config(self):
        with patch.dict(os.environ, SMTP_ENV):
            self.assertTrue(EmailChannel().validate_config())

    @patch('notification.channels.smtplib.SMTP')
    def test_send_success_with_html_part(self, mock_smtp_class):
        mock_smtp = Mock()
        mock_smtp_class.return_value.__enter__ = Mock(return_value=mock_smtp)
        mock_smtp_class.return_value.__exit__ = Mock(return_value=False)

        with patch.dict(os.environ, SMTP_ENV):
            result = EmailChannel().send(
                recipient='student@example.com',
                subject='New Must-Apply Scholarship: X',
                body='Plain body',
                metadata={'html_body': '<p>HTML body</p>'}
            )

        self.assertTrue(result)
        mock_smtp_class.assert_called_once_with('smtp.example.com', 587)
        mock_smtp.starttls.assert_called_once()
        mock_smtp.login.assert_called_once_with('mailer@example.com', 'password')
        message = mock_smtp.send_message.call_args[0][0]
        self.assertEqual(message['To'], 'student@example.com')
        self.assertEqual(message['From'], 'from@example.com')
        self.assertEqual([part.get_content_type() for part in message.get_payload()], ['text/plain', 'text/html'])

    @patch('notification.channels.smtplib.SMTP')
    def test_send_smtp_failure_returns_false(self, mock_smtp_class):
        mock_smtp_class.side_effect = OSError("connection refused")
        with patch.dict(os.environ, SMTP_ENV):
            self.assertFalse(EmailChannel().send('student@example.com', 'S', 'B', {}))

    def test_send_without_config_returns_false(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertFalse(EmailChannel().send('student@example.com', 'S', 'B', {}))

    @patch('notification.channels.smtplib.SMTP')
    def test_dry_run_skips_smtp(self, mock_smtp_class):
        with patch.dict(os.environ, {'NOTIFICATION_DRY_RUN': 'true'}, clear=True):
            self.assertTrue(EmailChannel().send('student@example.com', 'S', 'B', {}))
        mock_smtp_class.assert_not_called()


@patch('notification.channels.socket.getaddrinfo', return_value=PUBLIC_ADDRINFO)
class TestWebhookChannel(unittest.TestCase):

    @patch('notification.channels.requests.post')
    def test_send_json_payload(self, mock_post, _mock_dns):
        mock_post.return_value.raise_for_status = Mock()

        result = WebhookChannel().send(
            recipient='https://hooks.example.com/scholarships',
            subject='New match',
            body='Body',
            metadata={'student_id': 'stu_1', 'scholarship_id': 'sch_1', 'score': 91.0, 'priority_tier': 'MUST_APPLY'}
        )

        self.assertTrue(result)
        payload = mock_post.call_args.kwargs['json']
        self.assertEqual(payload['type'], 'scholarship_match')
        self.assertEqual(payload['subject'], 'New match')
        self.assertEqual(payload['match']['scholarship_id'], 'sch_1')
        self.assertEqual(payload['match']['score'], 91.0)
        self.assertEqual(mock_post.call_args.kwargs['timeout'], 30)

    @patch('notification.channels.requests.post')
    def test_http_error_returns_false(self, mock_post, _mock_dns):
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        self.assertFalse(WebhookChannel().send('https://hooks.example.com/x', 'S', 'B', {}))

    @patch('notification.channels.requests.post')
    def test_rejects_private_address(self, mock_post, mock_dns):
        mock_dns.return_value = PRIVATE_ADDRINFO
        self.assertFalse(WebhookChannel().send('https://internal.example.com/x', 'S', 'B', {}))
        mock_post.assert_not_called()

    @patch('notification.channels.requests.post')
    def test_rejects_non_http_scheme(self, mock_post, _mock_dns):
        self.assertFalse(WebhookChannel().send('ftp://hooks.example.com/x', 'S', 'B', {}))
        mock_post.assert_not_called()

    @patch('notification.channels.requests.post')
    def test_unresolvable_host(self, mock_post, mock_dns):
        mock_dns.side_effect = socket.gaierror("nope")
        self.assertFalse(WebhookChannel().send('https://missing.example.com/x', 'S', 'B', {}))
        mock_post.assert_not_called()


@pytest.mark.db
class TestInAppChannel:

    def test_send_creates_inbox_row(self, db_session):
        add_student(db_session, "stu_1")
        db_session.commit()

        with patch.dict(os.environ, {'NOTIFICATION_DRY_RUN': ''}):
            sent = InAppChannel().send(
                recipient="stu_1",
                subject="New Must-Apply Scholarship: X",
                body="Long body",
                metadata={'summary': 'X is a 91% match.', 'scholarship_id': None, 'score': 91.0,
                          'priority_tier': 'MUST_APPLY'},
            )

        assert sent is True
        with matching_uow() as repo:
            [notification] = repo.notifications.get_in_app_notifications("stu_1", unread_only=True)
            assert notification.title == "New Must-Apply Scholarship: X"
            assert notification.message == "X is a 91% match."
            assert notification.match_score == 91.0
            assert notification.read is False

    def test_body_used_without_summary(self, db_session):
        add_student(db_session, "stu_1")
        db_session.commit()

        with patch.dict(os.environ, {'NOTIFICATION_DRY_RUN': ''}):
            InAppChannel().send("stu_1", "Title", "Fallback body", {})

        with matching_uow() as repo:
            [notification] = repo.notifications.get_in_app_notifications("stu_1")
            assert notification.message == "Fallback body"


class TestNotificationChannelFactory(unittest.TestCase):

    def setUp(self):
        self._channels = dict(NotificationChannelFactory._channels)
        self._loaded = NotificationChannelFactory._custom_channels_loaded

    def tearDown(self):
        NotificationChannelFactory._channels = self._channels
        NotificationChannelFactory._custom_channels_loaded = self._loaded

    def test_builtin_channels(self):
        self.assertIsInstance(NotificationChannelFactory.get_channel('email'), EmailChannel)
        self.assertIsInstance(NotificationChannelFactory.get_channel('IN_APP'), InAppChannel)
        self.assertIsInstance(NotificationChannelFactory.get_channel('webhook'), WebhookChannel)

    def test_unknown_channel_raises(self):
        with self.assertRaises(ValueError):
            NotificationChannelFactory.get_channel('carrier_pigeon')

    def test_register_new_channel(self):
        class SmsChannel(NotificationChannel):
            @property
            def channel_type(self) -> str:
                return 'sms'

            def send(self, recipient, subject, body, metadata) -> bool:
                return True

        NotificationChannelFactory.register_channel('sms', SmsChannel)
        self.assertTrue(NotificationChannelFactory.get_channel('sms').send('x', 's', 'b', {}))

    def test_register_rejects_non_channel(self):
        with self.assertRaises(ValueError):
            NotificationChannelFactory.register_channel('bad', dict)

    def test_load_channel_from_environment_variable(self):
        NotificationChannelFactory._custom_channels_loaded = False
        env = {'NOTIFICATION_CHANNEL_MODULES': 'notification.channels:WebhookChannel'}
        with patch.dict(NotificationChannelFactory._channels, {}, clear=True), patch.dict(os.environ, env):
            channel = NotificationChannelFactory.get_channel('webhook')
        self.assertIsInstance(channel, WebhookChannel)
        self.assertTrue(NotificationChannelFactory._custom_channels_loaded)


if __name__ == '__main__':
    unittest.main()
