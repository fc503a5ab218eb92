import unittest
from datetime import datetime

from deskbot.domain import OrderStatus, RateLimiter, ValidationError
from deskbot.domain.commands import (
    CommandUsage,
    Help,
    ListHuman,
    OrderAdd,
    OrderDelete,
    OrderEdit,
    OrderExport,
    OrderUsage,
    OrderView,
    Release,
    TakeOver,
    UnknownCommand,
    is_command,
    normalize_address,
    parse_command,
)
from deskbot.domain.models import Order, Session, summarize_orders
from deskbot.domain.order_input import (
    format_date,
    format_price,
    parse_deadline,
    parse_order_input,
    parse_price,
)


class TestRateLimiter(unittest.TestCase):
    def test_fourth_call_within_window_is_limited(self):
        now = [0]
        limiter = RateLimiter(window_ms=10_000, max_messages=3, clock=lambda: now[0])

        results = []
        for t in (0, 1_000, 2_000, 3_000):
            now[0] = t
            results.append(limiter.check("a"))

        self.assertEqual(results, [False, False, False, True])

    def test_call_exactly_one_window_later_still_counts_the_first(self):
        now = [0]
        limiter = RateLimiter(window_ms=10_000, max_messages=3, clock=lambda: now[0])

        results = []
        for t in (0, 1, 2, 10_000):
            now[0] = t
            results.append(limiter.check("a"))

        self.assertEqual(results, [False, False, False, True])
        self.assertEqual(limiter.window("a"), [0, 1, 2, 10_000])

    def test_calls_eleven_seconds_apart_are_never_limited(self):
        now = [0]
        limiter = RateLimiter(clock=lambda: now[0])
        for i in range(10):
            now[0] = i * 11_000
            self.assertFalse(limiter.check("a"))
        self.assertEqual(len(limiter.window("a")), 1)

    def test_senders_are_independent(self):
        limiter = RateLimiter(max_messages=1, clock=lambda: 0)
        self.assertFalse(limiter.check("a"))
        self.assertFalse(limiter.check("b"))
        self.assertTrue(limiter.check("a"))

    def test_reset(self):
        limiter = RateLimiter(max_messages=1, clock=lambda: 0)
        limiter.check("a")
        limiter.reset("a")
        self.assertEqual(limiter.window("a"), [])


class TestOrderInput(unittest.TestCase):
    def test_pipe_form(self):
        fields = parse_order_input("Jane|250000|Edit wedding video|Video Editing|2025-01-15")
        self.assertEqual(fields, {
            "ordererName": "Jane",
            "price": "250000",
            "details": "Edit wedding video",
            "work": "Video Editing",
            "deadline": "2025-01-15",
        })

    def test_pipe_form_without_deadline(self):
        fields = parse_order_input("Jane | 250000 | Edit | Video")
        self.assertEqual(fields["work"], "Video")
        self.assertIsNone(fields["deadline"])

    def test_empty_deadline_is_none(self):
        self.assertIsNone(parse_order_input("Jane|250000|Edit|Video|")["deadline"])

    def test_line_form(self):
        fields = parse_order_input("Jane\n250000\nEdit\nVideo\n15/01/2025")
        self.assertEqual(fields["deadline"], "15/01/2025")

    def test_wrong_shapes(self):
        self.assertIsNone(parse_order_input(""))
        self.assertIsNone(parse_order_input("Jane|250000|Edit"))
        self.assertIsNone(parse_order_input("a|b|c|d|e|f"))
        self.assertIsNone(parse_order_input("Jane||Edit|Video"))
        self.assertIsNone(parse_order_input("Jane\n250000\nEdit"))

    def test_parse_price(self):
        self.assertEqual(parse_price("250000"), 250000)
        self.assertEqual(parse_price("250.000"), 250000)
        self.assertEqual(parse_price("1,500,000"), 1500000)
        self.assertEqual(parse_price(75000), 75000)

    def test_parse_price_rejects(self):
        for raw in ("", "abc", "0", "-5", "12.5", "2500.00", True):
            with self.subTest(raw=raw):
                with self.assertRaises(ValidationError):
                    parse_price(raw)

    def test_deadline_formats_agree(self):
        expected = int(datetime(2025, 1, 15).timestamp() * 1000)
        for raw in ("2025-01-15", "15/01/2025", "15-01-2025", "2025-1-15"):
            with self.subTest(raw=raw):
                self.assertEqual(parse_deadline(raw), expected)

    def test_deadline_empty_and_invalid(self):
        self.assertIsNone(parse_deadline(""))
        self.assertIsNone(parse_deadline(None))
        for raw in ("besok", "2025-02-30", "32/01/2025", "2025/01/15", "0001-01-01", "01/01/0001"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValidationError):
                    parse_deadline(raw)

    def test_formatting(self):
        self.assertEqual(format_price(250000), "Rp250.000")
        self.assertEqual(format_date(None), "-")
        self.assertEqual(format_date(parse_deadline("2025-01-15")), "2025-01-15")


class TestCommands(unittest.TestCase):
    def test_not_a_command(self):
        self.assertIsNone(parse_command("halo"))
        self.assertFalse(is_command("halo"))
        self.assertTrue(is_command("  !help"))

    def test_session_commands(self):
        self.assertEqual(parse_command("!ambil 62811"), TakeOver("62811"))
        self.assertEqual(parse_command("!selesai 62811@c.us"), Release("62811@c.us"))
        self.assertEqual(parse_command("!list"), ListHuman())
        self.assertEqual(parse_command("!help"), Help())
        self.assertIsInstance(parse_command("!ambil"), CommandUsage)
        self.assertIsInstance(parse_command("!selesai"), CommandUsage)

    def test_order_commands(self):
        self.assertEqual(parse_command("!order add A|1|B|C"), OrderAdd("A|1|B|C"))
        self.assertEqual(parse_command("!order view"), OrderView())
        self.assertEqual(parse_command("!order view ORD-0001"), OrderView("ORD-0001"))
        self.assertEqual(
            parse_command("!order edit ORD-0001 status on progress"),
            OrderEdit("ORD-0001", "status", "on progress"),
        )
        self.assertEqual(parse_command("!order delete ORD-0001"), OrderDelete("ORD-0001"))
        self.assertEqual(parse_command("!order export"), OrderExport())

    def test_order_usage(self):
        self.assertEqual(parse_command("!order"), OrderUsage())
        self.assertEqual(parse_command("!order refund"), OrderUsage())
        self.assertIsInstance(parse_command("!order edit ORD-0001 status"), CommandUsage)
        self.assertIsInstance(parse_command("!order delete"), CommandUsage)

    def test_order_add_keeps_lines(self):
        command = parse_command("!order add\nJane\n250000\nEdit\nVideo")
        self.assertEqual(command, OrderAdd("Jane\n250000\nEdit\nVideo"))

    def test_names_are_case_sensitive(self):
        self.assertEqual(parse_command("!HELP"), UnknownCommand("!HELP"))

    def test_normalize_address(self):
        self.assertEqual(normalize_address("+62 812-345"), "62812345@c.us")
        self.assertEqual(normalize_address("62812@c.us"), "62812@c.us")


class TestModels(unittest.TestCase):
    def test_status_parse(self):
        self.assertIs(OrderStatus.parse("On  Progress"), OrderStatus.ON_PROGRESS)
        self.assertIs(OrderStatus.parse("DONE"), OrderStatus.DONE)
        self.assertIsNone(OrderStatus.parse("selesai"))

    def test_order_json_uses_camel_case(self):
        order = Order("ORD-0001", "Jane", 250000, "Edit", "Video", time=1)
        data = order.to_dict()
        self.assertEqual(data["ordererName"], "Jane")
        self.assertEqual(data["status"], "todo")
        self.assertEqual(Order.from_dict(data), order)

    def test_session_with_bad_mode_falls_back_to_ai(self):
        session = Session.from_dict({"mode": "robot"})
        self.assertFalse(session.is_human)
        self.assertFalse(session.greeted)

    def test_summarize_orders(self):
        orders = [
            Order("ORD-0001", "A", 100, "d", "w"),
            Order("ORD-0002", "B", 250, "d", "w", status=OrderStatus.DONE),
        ]
        summary = summarize_orders(orders)
        self.assertEqual(summary["total"], 2)
        self.assertEqual(summary["revenue"], 350)
        self.assertEqual(summary["by_status"]["done"], 1)
        self.assertEqual(summary["by_status"]["canceled"], 0)


if __name__ == "__main__":
    unittest.main()
