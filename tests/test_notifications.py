from datetime import datetime, timedelta

from EnvCheck import OPTIONAL_KEYS, check_environment, is_configured
from NotificationCenter import Notification, NotificationCenter, Severity


class TestNotificationCenter:

    def test_notify_uses_defaults(self):
        center = NotificationCenter(default_duration_ms=4000)

        assert center.notify("hello") is None

        [notification] = center.active()
        assert notification.message == "hello"
        assert notification.severity is Severity.INFO
        assert notification.duration_ms == 4000
        assert notification.dismissible is True

    def test_oldest_evicted_when_full(self):
        center = NotificationCenter(max_visible=3)
        for i in range(5):
            center.notify(f"msg {i}", Severity.WARNING)

        assert [n.message for n in center.active()] == ["msg 2", "msg 3", "msg 4"]

    def test_expired_notifications_are_purged(self):
        center = NotificationCenter()
        center.notify("short", duration_ms=10)
        center.notify("sticky", duration_ms=0)
        center.notifications[0].created_at = datetime.now() - timedelta(seconds=1)

        assert [n.message for n in center.active()] == ["sticky"]

    def test_dismiss(self):
        center = NotificationCenter()
        center.notify("closable", Severity.ERROR)
        center.notify("pinned", Severity.ERROR, 0, False)
        closable, pinned = center.active()

        assert center.dismiss(closable.id) is True
        assert center.dismiss(pinned.id) is False
        assert center.dismiss("unknown") is False
        assert [n.message for n in center.active()] == ["pinned"]

    def test_clear(self):
        center = NotificationCenter()
        center.notify("a")
        center.notify("b")
        center.clear()
        assert center.active() == []

    def test_severity_accepts_plain_strings(self):
        center = NotificationCenter()
        center.notify("ok", "success")
        assert center.active()[0].severity is Severity.SUCCESS

    def test_sticky_never_expires(self):
        notification = Notification(message="x", duration_ms=0)
        assert not notification.expired(datetime.now() + timedelta(days=365))


class RecordingSink:
    def __init__(self):
        self.calls = []

    def __call__(self, message, severity, duration_ms, dismissible):
        self.calls.append((message, severity, duration_ms, dismissible))


class TestCheckEnvironment:

    def test_placeholder_and_blank_count_as_missing(self):
        assert not is_configured(None)
        assert not is_configured("   ")
        assert not is_configured("your_key_here")
        assert is_configured("sk-123")

    def test_partial_configuration_sends_one_notice(self):
        sink = RecordingSink()
        env = {"GROQ_API_KEY": "real", "OPENROUTER_API_KEY": "real", "FINNHUB_API_KEY": "your_key_here"}

        missing = check_environment(sink, env)

        assert missing == ["Finnhub", "Cloudflare"]
        assert sink.calls == [
            (
                "Finnhub, Cloudflare API keys not configured - some features may be limited",
                Severity.INFO,
                6000,
                True,
            )
        ]

    def test_single_missing_key_is_singular(self):
        sink = RecordingSink()
        env = {check.key: "set" for check in OPTIONAL_KEYS}
        env["GROQ_API_KEY"] = ""

        check_environment(sink, env)

        assert sink.calls[0][0] == "Groq API key not configured - some features may be limited"

    def test_fresh_install_is_silent(self):
        sink = RecordingSink()
        assert check_environment(sink, {}) == [check.label for check in OPTIONAL_KEYS]
        assert sink.calls == []

    def test_fully_configured_is_silent(self):
        sink = RecordingSink()
        env = {check.key: "set" for check in OPTIONAL_KEYS}
        assert check_environment(sink, env) == []
        assert sink.calls == []

    def test_reads_process_environment_by_default(self, monkeypatch):
        for check in OPTIONAL_KEYS:
            monkeypatch.setenv(check.key, "set")
        monkeypatch.delenv("CLOUDFLARE_API_TOKEN")

        assert check_environment() == ["Cloudflare"]

    def test_notifies_into_notification_center(self):
        center = NotificationCenter()
        check_environment(center.notify, {"GROQ_API_KEY": "set"})

        [notification] = center.active()
        assert notification.duration_ms == 6000
        assert notification.message.startswith("OpenRouter, Finnhub, Cloudflare API keys")
