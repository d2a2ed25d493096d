import unittest
from unittest.mock import MagicMock

from scopebind import Key, Singleton, bind_constructor, bind_from, create_root


class SmtpGateway:
    def send_raw(self, envelope: dict) -> str:
        return "queued"


class MailNotifier:
    """Adapts the gateway's envelope API to `notify(user, text)`."""

    def __init__(self, gateway: SmtpGateway, sender: str = "noreply@example.com") -> None:
        self.gateway = gateway
        self.sender = sender

    def notify(self, user: str, text: str) -> None:
        status = self.gateway.send_raw({"from": self.sender, "to": user, "body": text})
        if status != "queued":
            msg = f"Mail to {user} was rejected: {status}"
            raise RuntimeError(msg)


NotifierKey = Key("Notifier")
MailNotifierKey = Key(of=MailNotifier, scope=Singleton)
GatewayKey = Key(of=SmtpGateway, default=SmtpGateway)
SenderKey = Key("Sender")


class TestAdapterWiring(unittest.TestCase):
    def setUp(self):
        self.gateway = MagicMock(spec=SmtpGateway)
        self.gateway.send_raw.return_value = "queued"

        self.cont = (
            create_root()
            .provide_instance(GatewayKey, self.gateway)
            .provide_instance(SenderKey, "ops@example.com")
            .bind(MailNotifierKey, bind_constructor(MailNotifier, GatewayKey, SenderKey))
            .bind(NotifierKey, bind_from(MailNotifierKey))
        )

    def test_adapter_translates_calls(self):
        self.cont.request(NotifierKey).notify("ada@example.com", "hi")

        self.gateway.send_raw.assert_called_once_with(
            {"from": "ops@example.com", "to": "ada@example.com", "body": "hi"},
        )

    def test_alias_shares_the_scoped_adapter(self):
        assert self.cont.request(NotifierKey) is self.cont.request(MailNotifierKey)


def test_adapter_falls_back_to_default_gateway():
    cont = create_root().bind(NotifierKey, bind_constructor(MailNotifier, GatewayKey))

    notifier = cont.request(NotifierKey)
    notifier.notify("ada@example.com", "hi")

    assert isinstance(notifier.gateway, SmtpGateway)
    assert notifier.sender == "noreply@example.com"
