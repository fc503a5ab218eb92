import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from deskbot.application.message_router import (
    AI_ERROR_MSG,
    COMMAND_FAILED_MSG,
    HANDOFF_ACK_MSG,
    THROTTLE_MSG,
    UNKNOWN_COMMAND_MSG,
    chunk_blocks,
)
from deskbot.domain import Mode, OrderStatus, StorageError
from deskbot.infrastructure.persistence import InMemoryStore, OrderLedger
from deskbot.infrastructure.whatsapp import InboundMessage

from fakes import ADMIN, USER, FakeCompletion, backend_down, greeted, make_router


class ReadOnlyStore(InMemoryStore):
    def save(self, data):
        raise StorageError("disk is read-only")


def msg(body, sender=USER, **kwargs):
    return InboundMessage(sender=sender, body=body, **kwargs)


class RouterTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.export_dir = Path(self._tmp.name) / "exports"

    def tearDown(self):
        self._tmp.cleanup()

    def router(self, **kwargs):
        return make_router(self.export_dir, **kwargs)


class TestGreeting(RouterTestCase):
    def test_new_sender_gets_welcome_with_faq_list(self):
        completion = FakeCompletion()
        router, provider = self.router(completion=completion)

        router.handle(msg("halo"))

        replies = provider.texts_to(USER)
        self.assertEqual(len(replies), 1)
        self.assertIn("Selamat datang", replies[0])
        self.assertIn("1. jam operasional", replies[0])
        self.assertTrue(router.sessions.get(USER).greeted)
        self.assertEqual(completion.prompts, [])

    def test_second_message_goes_to_ai(self):
        completion = FakeCompletion(answer="Siap kak")
        router, provider = self.router(completion=completion)

        router.handle(msg("halo"))
        router.handle(msg("bisa edit video?"))

        self.assertEqual(len(completion.prompts), 1)
        self.assertEqual(provider.texts_to(USER)[-1], "Siap kak")
        memory = router.sessions.get(USER).memory
        self.assertEqual([m.text for m in memory], ["bisa edit video?", "Siap kak"])

    def test_welcome_without_faq(self):
        router, provider = self.router(faq=[])
        router.handle(msg("halo"))
        self.assertIn("Belum ada FAQ", provider.texts_to(USER)[0])


class TestIgnoredMessages(RouterTestCase):
    def test_group_and_status_are_ignored(self):
        router, provider = self.router()

        router.handle(msg("halo", sender="1203630@g.us", is_group=True))
        router.handle(msg("story", sender="status@broadcast", is_status=True))

        self.assertEqual(provider.sent, [])
        self.assertEqual(router.sessions.all(), {})

    def test_own_echo_is_dropped(self):
        router, provider = self.router()
        router.handle(msg("halo juga", from_me=True))
        self.assertEqual(provider.sent, [])

    def test_own_command_replies_to_admin(self):
        router, provider = self.router()
        router.handle(msg("!list", from_me=True))
        self.assertEqual(len(provider.texts_to(ADMIN)), 1)
        self.assertEqual(provider.texts_to(USER), [])


class TestAllowlist(RouterTestCase):
    def test_sender_outside_allowlist_is_dropped(self):
        router, provider = self.router(allow_mode="allowlist", allow_list=("62822@c.us",))

        router.handle(msg("halo"))
        router.handle(msg("halo", sender="62822@c.us"))

        self.assertEqual(provider.texts_to(USER), [])
        self.assertFalse(router.sessions.exists(USER))
        self.assertEqual(len(provider.texts_to("62822@c.us")), 1)

    def test_admin_passes_allowlist(self):
        router, provider = self.router(allow_mode="allowlist", allow_list=())
        router.handle(msg("!help", sender=ADMIN))
        self.assertEqual(len(provider.texts_to(ADMIN)), 1)


class TestRateGate(RouterTestCase):
    def test_fourth_message_in_window_is_throttled(self):
        completion = FakeCompletion()
        router, provider = self.router(completion=completion, sessions=greeted(), clock=lambda: 1_000)

        for _ in range(4):
            router.handle(msg("bisa edit video?"))

        self.assertEqual(len(completion.prompts), 3)
        self.assertEqual(provider.texts_to(USER)[-1], THROTTLE_MSG)

    def test_admin_is_never_throttled(self):
        router, provider = self.router(clock=lambda: 1_000)
        for _ in range(5):
            router.handle(msg("!help", sender=ADMIN))
        self.assertNotIn(THROTTLE_MSG, provider.texts_to(ADMIN))


class TestHandoff(RouterTestCase):
    def test_handoff_switches_to_human_and_notifies_admin(self):
        completion = FakeCompletion()
        router, provider = self.router(completion=completion, sessions=greeted())

        router.handle(msg("saya mau bicara dengan admin"))

        self.assertIs(router.sessions.get(USER).mode, Mode.HUMAN)
        self.assertEqual(provider.texts_to(USER), [HANDOFF_ACK_MSG])
        self.assertIn(USER, provider.texts_to(ADMIN)[0])
        self.assertEqual(completion.prompts, [])

    def test_handoff_word_must_stand_alone(self):
        completion = FakeCompletion()
        router, _ = self.router(completion=completion, sessions=greeted())

        router.handle(msg("saya suka discsaver"))

        self.assertIs(router.sessions.get(USER).mode, Mode.AI)
        self.assertEqual(len(completion.prompts), 1)

    def test_human_mode_forwards_verbatim(self):
        completion = FakeCompletion()
        router, provider = self.router(completion=completion, sessions=greeted(mode="human"))

        router.handle(msg("tolong cek pesanan saya\nnomor ORD-0001"))

        self.assertEqual(provider.texts_to(USER), [])
        forwarded = provider.texts_to(ADMIN)
        self.assertEqual(len(forwarded), 1)
        self.assertIn("tolong cek pesanan saya\nnomor ORD-0001", forwarded[0])
        self.assertEqual(completion.prompts, [])


class TestAnswering(RouterTestCase):
    def test_faq_beats_knowledge_and_ai(self):
        completion = FakeCompletion()
        router, provider = self.router(completion=completion, sessions=greeted())

        router.handle(msg("Jam operasional dan harga berapa?"))

        self.assertEqual(provider.texts_to(USER), ["Kami buka jam 09.00-21.00 WIB."])
        self.assertEqual(completion.prompts, [])
        self.assertEqual(len(router.sessions.get(USER).memory), 2)

    def test_knowledge_grounds_the_prompt(self):
        completion = FakeCompletion()
        router, _ = self.router(completion=completion, sessions=greeted())

        router.handle(msg("berapa harga edit video?"))

        self.assertIn("Editing video mulai Rp150.000.", completion.prompts[0])

    def test_no_knowledge_uses_cautious_prompt(self):
        completion = FakeCompletion()
        router, _ = self.router(completion=completion, sessions=greeted())

        router.handle(msg("bisa kirim ke luar negeri?"))

        self.assertIn("Jangan mengarang", completion.prompts[0])

    def test_memory_is_part_of_next_prompt(self):
        completion = FakeCompletion(answer="Bisa kak")
        router, _ = self.router(completion=completion, sessions=greeted())

        router.handle(msg("bisa edit video?"))
        router.handle(msg("kapan selesai?"))

        self.assertIn("User: bisa edit video?", completion.prompts[1])
        self.assertIn("Bot: Bisa kak", completion.prompts[1])

    def test_backend_error_sends_apology_without_memory(self):
        router, provider = self.router(completion=backend_down(), sessions=greeted())

        router.handle(msg("bisa edit video?"))

        self.assertEqual(provider.texts_to(USER), [AI_ERROR_MSG])
        self.assertEqual(router.sessions.get(USER).memory, [])


class TestSessionCommands(RouterTestCase):
    def test_take_over_and_release(self):
        router, provider = self.router(sessions=greeted())

        router.handle(msg("!ambil 62811", sender=ADMIN))
        self.assertIs(router.sessions.get(USER).mode, Mode.HUMAN)
        self.assertEqual(len(provider.texts_to(USER)), 1)

        router.handle(msg("!list", sender=ADMIN))
        self.assertIn(USER, provider.texts_to(ADMIN)[-1])

        router.handle(msg("!selesai 62811@c.us", sender=ADMIN))
        self.assertIs(router.sessions.get(USER).mode, Mode.AI)

    def test_take_over_unknown_session(self):
        router, provider = self.router()
        router.handle(msg("!ambil 62999", sender=ADMIN))
        self.assertIn("62999@c.us tidak ditemukan", provider.texts_to(ADMIN)[0])
        self.assertFalse(router.sessions.exists("62999@c.us"))

    def test_take_over_without_target_shows_usage(self):
        router, provider = self.router()
        router.handle(msg("!ambil", sender=ADMIN))
        self.assertIn("!ambil <nomor>", provider.texts_to(ADMIN)[0])

    def test_unknown_command(self):
        router, provider = self.router()
        router.handle(msg("!hapus semua", sender=ADMIN))
        self.assertEqual(provider.texts_to(ADMIN), [UNKNOWN_COMMAND_MSG])

    def test_customer_commands_are_plain_text(self):
        completion = FakeCompletion()
        router, provider = self.router(completion=completion, sessions=greeted())

        router.handle(msg("!order view"))

        self.assertEqual(len(completion.prompts), 1)
        self.assertEqual(router.ledger.all(), [])


class TestOrderCommands(RouterTestCase):
    def test_order_add_single_line(self):
        router, provider = self.router()

        router.handle(msg("!order add Jane|250000|Edit wedding video|Video Editing|2025-01-15", sender=ADMIN))

        order = router.ledger.get("ORD-0001")
        self.assertEqual(order.orderer_name, "Jane")
        self.assertEqual(order.price, 250000)
        self.assertIs(order.status, OrderStatus.TODO)
        self.assertEqual(order.deadline, int(datetime(2025, 1, 15).timestamp() * 1000))
        self.assertIn("ORD-0001", provider.texts_to(ADMIN)[0])
        # Commands skip the welcome step
        self.assertFalse(router.sessions.exists(ADMIN))

    def test_order_add_multi_line(self):
        router, _ = self.router()
        router.handle(msg("!order add\nBudi\n150.000\nPotong klip\nShort Video", sender=ADMIN))

        order = router.ledger.get("ORD-0001")
        self.assertEqual(order.price, 150000)
        self.assertIsNone(order.deadline)

    def test_order_add_bad_shape_shows_format(self):
        router, provider = self.router()
        router.handle(msg("!order add Jane|250000", sender=ADMIN))
        self.assertIn("Format order tidak valid", provider.texts_to(ADMIN)[0])

    def test_order_add_with_out_of_range_year_is_rejected(self):
        router, provider = self.router()
        router.handle(msg("!order add Jane|250000|Edit|Video|0001-01-01", sender=ADMIN))

        self.assertTrue(provider.texts_to(ADMIN)[0].startswith("⚠️ Format tanggal tidak valid"))
        self.assertEqual(router.ledger.all(), [])

    def test_storage_failure_is_reported_to_admin(self):
        router, provider = self.router()
        router.ledger = OrderLedger(ReadOnlyStore())

        router.handle(msg("!order add Jane|250000|Edit|Video", sender=ADMIN))

        self.assertEqual(provider.texts_to(ADMIN), [COMMAND_FAILED_MSG])
        self.assertEqual(router.ledger.all(), [])

    def test_order_add_bad_price(self):
        router, provider = self.router()
        router.handle(msg("!order add Jane|dua ratus|Edit|Video", sender=ADMIN))
        self.assertTrue(provider.texts_to(ADMIN)[0].startswith("⚠️"))
        self.assertEqual(router.ledger.counter, 0)

    def test_order_edit_bad_status_keeps_record(self):
        router, provider = self.router()
        router.handle(msg("!order add Jane|250000|Edit|Video", sender=ADMIN))

        router.handle(msg("!order edit ORD-0001 status selesai", sender=ADMIN))

        self.assertIs(router.ledger.get("ORD-0001").status, OrderStatus.TODO)
        self.assertIn("tidak valid", provider.texts_to(ADMIN)[-1])

    def test_order_edit_status(self):
        router, _ = self.router()
        router.handle(msg("!order add Jane|250000|Edit|Video", sender=ADMIN))
        router.handle(msg("!order edit ord-0001 status On Progress", sender=ADMIN))
        self.assertIs(router.ledger.get("ORD-0001").status, OrderStatus.ON_PROGRESS)

    def test_order_view_unknown(self):
        router, provider = self.router()
        router.handle(msg("!order view ORD-0042", sender=ADMIN))
        self.assertIn("ORD-0042", provider.texts_to(ADMIN)[0])

    def test_order_view_all_respects_chunk_size(self):
        router, provider = self.router(chunk_size=600)
        for i in range(10):
            router.ledger.create(f"Pemesan {i}", 100000 + i, "Detail " * 20, "Video Editing")

        router.handle(msg("!order view", sender=ADMIN))

        chunks = provider.texts_to(ADMIN)
        self.assertGreater(len(chunks), 1)
        self.assertTrue(all(len(c) <= 600 for c in chunks))
        joined = "\n\n".join(chunks)
        for i in range(10):
            self.assertIn(f"ORD-{i + 1:04d}", joined)

    def test_order_delete(self):
        router, provider = self.router()
        router.handle(msg("!order add Jane|250000|Edit|Video", sender=ADMIN))
        router.handle(msg("!order delete ORD-0001", sender=ADMIN))

        self.assertEqual(router.ledger.all(), [])
        self.assertIn("dihapus", provider.texts_to(ADMIN)[-1])

    def test_order_without_subcommand_shows_usage(self):
        router, provider = self.router()
        router.handle(msg("!order", sender=ADMIN))
        self.assertIn("!order add", provider.texts_to(ADMIN)[0])

    def test_export_sends_file_and_schedules_cleanup(self):
        router, provider = self.router()
        router.handle(msg("!order add Jane|250000|Edit|Video", sender=ADMIN))

        router.handle(msg("!order export", sender=ADMIN))

        self.assertEqual(len(provider.files), 1)
        address, path, _ = provider.files[0]
        self.assertEqual(address, ADMIN)
        self.assertTrue(path.exists())

        timer = router.scheduler.pending[path]
        self.assertEqual(timer.interval, 30)
        self.assertTrue(timer.daemon)
        timer.fire()
        self.assertFalse(path.exists())

    def test_export_falls_back_to_path_when_sending_fails(self):
        router, provider = self.router()
        provider.send_file_result = False

        router.handle(msg("!order export", sender=ADMIN))

        _, path, _ = provider.files[0]
        self.assertIn(str(path), provider.texts_to(ADMIN)[-1])
        self.assertTrue(path.exists())
        self.assertEqual(router.scheduler.pending, {})


class TestChunkBlocks(unittest.TestCase):
    def test_blocks_are_packed_up_to_limit(self):
        blocks = ["a" * 1500] * 5
        chunks = chunk_blocks(blocks, limit=4000)
        self.assertEqual(len(chunks), 3)
        self.assertTrue(all(len(c) <= 4000 for c in chunks))

    def test_oversized_block_is_split(self):
        chunks = chunk_blocks(["x" * 9000], limit=4000)
        self.assertEqual([len(c) for c in chunks], [4000, 4000, 1000])

    def test_empty(self):
        self.assertEqual(chunk_blocks([]), [])


if __name__ == "__main__":
    unittest.main()
