import unittest
from unittest import mock

from heaviside.common.errors import HeavisideError
from heaviside.events.bus import Heaviside
from heaviside.events.models import SENTINEL_ATTR, Envelope
from heaviside.transport.receiver import CrossWindowReceiver, split_envelope
from heaviside.transport.window import EventTarget, MessageEvent


class TestSplitEnvelope(unittest.TestCase):
    def test_single_fragment_is_the_payload(self):
        self.assertEqual(split_envelope(Envelope(["topic", {"a": 1}])), ("topic", {"a": 1}))

    def test_no_fragments(self):
        self.assertEqual(split_envelope(Envelope(["topic"])), ("topic", None))

    def test_several_fragments_become_a_list(self):
        self.assertEqual(split_envelope(Envelope(["topic", "a", "b"])), ("topic", ["a", "b"]))

    def test_rejects_untagged(self):
        self.assertIsNone(split_envelope(["topic", {"a": 1}]))
        self.assertIsNone(split_envelope({"_is_heaviside": True}))
        self.assertIsNone(split_envelope(None))

    def test_falsy_sentinel_is_rejected(self):
        env = Envelope(["topic", "a"])
        setattr(env, SENTINEL_ATTR, False)
        self.assertIsNone(split_envelope(env))

    def test_rejects_empty_or_non_sequence(self):
        self.assertIsNone(split_envelope(Envelope()))

        class Tagged:
            pass

        odd = Tagged()
        setattr(odd, SENTINEL_ATTR, True)
        self.assertIsNone(split_envelope(odd))

    def test_does_not_mutate_input(self):
        env = Envelope(["topic", "a"])
        split_envelope(env)
        self.assertEqual(list(env), ["topic", "a"])


class TestCrossWindowReceiver(unittest.TestCase):
    def setUp(self):
        self.hub = mock.Mock(spec=Heaviside)
        self.receiver = CrossWindowReceiver(self.hub)

    def test_dispatches_remaining_elements(self):
        self.receiver.handle_event(MessageEvent(data=Envelope(["topic", {"a": 1}])))
        self.hub.dispatch.assert_called_once_with("topic", {"a": 1})

    def test_ignores_foreign_messages(self):
        for data in (["topic", {"a": 1}], "topic", {"type": "other"}, 42, None):
            with self.subTest(data=data):
                self.receiver.handle_event(MessageEvent(data=data, origin="https://evil.example"))
        self.hub.dispatch.assert_not_called()

    def test_ignores_envelope_with_cleared_sentinel(self):
        env = Envelope(["topic", "a"])
        setattr(env, SENTINEL_ATTR, False)
        self.receiver.handle_event(MessageEvent(data=env))
        self.hub.dispatch.assert_not_called()

    def test_foreign_messages_logged_at_debug(self):
        with self.assertLogs("heaviside.receiver", level="DEBUG") as logs:
            self.receiver.handle_event(MessageEvent(data=["x"], origin="https://a.example"))
        self.assertIn("https://a.example", logs.output[0])

    def test_end_to_end_with_real_hub(self):
        hub = Heaviside()
        calls = []
        hub.subscribe("topic", lambda *a: calls.append(a))
        receiver = CrossWindowReceiver(hub)

        routed = {"messageKey": "x", "extra": 1}
        receiver.handle_event(MessageEvent(data=Envelope(["topic", routed])))
        receiver.handle_event(MessageEvent(data=Envelope(["topic", "hi"])))
        receiver.handle_event(MessageEvent(data=Envelope(["topic", ["a", "b"]])))
        receiver.handle_event(MessageEvent(data=Envelope(["topic"])))

        self.assertEqual(calls, [("x", routed), ("hi",), ("a", "b"), ()])


class TestReceiverAttach(unittest.TestCase):
    def setUp(self):
        self.receiver = CrossWindowReceiver(Heaviside())
        self.source = EventTarget()

    def test_attach_is_idempotent(self):
        self.receiver.attach(self.source)
        self.receiver.attach(self.source)
        self.assertEqual(self.source.listener_count("message"), 1)

    def test_second_source_is_rejected(self):
        self.receiver.attach(self.source)
        with self.assertRaises(HeavisideError):
            self.receiver.attach(EventTarget())

    def test_detach(self):
        self.receiver.attach(self.source)
        self.receiver.detach()
        self.receiver.detach()
        self.assertEqual(self.source.listener_count("message"), 0)
        self.receiver.attach(EventTarget())
        self.assertTrue(self.receiver.attached)


if __name__ == "__main__":
    unittest.main(verbosity=2)
