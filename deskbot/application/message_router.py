"""
Message Router - Decides What Happens to Every Inbound Message
===============================================================

Evaluated in order, first match wins:

1. Ignore status broadcasts, group chats and the bot's own echoes
2. Allowlist gate (ALLOW_MODE=allowlist)
3. Rate gate (non-admin senders)
4. First contact: welcome + FAQ list
5. Admin commands (!ambil, !selesai, !list, !help, !order ...)
6. New-session fallback
7. Handoff request ("admin", "cs", ...) -> human mode
8. Human mode: forward to admin, no automatic reply
9. AI mode: FAQ answer > knowledge-grounded LLM answer > cautious LLM answer

Replies to customers are in Indonesian.
"""

import logging
import re
from typing import List, Optional

from ..domain.commands import (
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
    normalize_address,
    parse_command,
)
from ..domain.errors import BackendError, DeskbotError, NotFoundError, ValidationError
from ..domain.models import Mode, Order, Role
from ..domain.order_input import format_date, format_price, parse_order_input
from ..domain.rate_limiter import RateLimiter
from ..infrastructure.config import BotSettings
from ..infrastructure.exporter import OrderExporter
from ..infrastructure.llm import CompletionService, build_prompt
from ..infrastructure.persistence import KnowledgeBase, OrderLedger, SessionStore
from ..infrastructure.whatsapp import InboundMessage, MessagingProvider
from ..infrastructure.whatsapp.messaging_provider import GROUP_SUFFIX, STATUS_BROADCAST
from .cleanup import CleanupScheduler

logger = logging.getLogger(__name__)

HANDOFF_PATTERN = re.compile(r"\b(admin|cs|manusia|human|operator|support)\b", re.IGNORECASE)

# ── Message Templates ──────────────────────────────────────────
WELCOME_MSG = (
    "👋 Halo! Selamat datang di layanan customer service kami.\n\n"
    "📚 Pertanyaan yang sering ditanyakan:\n{faq_list}\n\n"
    "Silakan ketik pertanyaanmu, atau ketik *admin* untuk bicara dengan admin."
)
NO_FAQ_MSG = "(Belum ada FAQ)"
THROTTLE_MSG = "⏳ Kamu mengirim pesan terlalu cepat. Tunggu sebentar ya, lalu coba lagi."
HANDOFF_ACK_MSG = "🧑‍💼 Baik! Saya hubungkan kamu dengan admin kami..."
HANDOFF_ADMIN_MSG = "📩 *Customer {sender} ingin bicara dengan admin.*"
FORWARD_MSG = "📩 Dari {sender}:\n{body}"
AI_ERROR_MSG = "⚠️ Maaf, terjadi kesalahan saat memproses permintaanmu."

TAKEOVER_ADMIN_MSG = "✅ Kamu sekarang meng-handle chat dari {target}"
TAKEOVER_USER_MSG = "🔔 Admin sudah bergabung dalam percakapan ini."
RELEASE_ADMIN_MSG = "✅ Chat {target} dikembalikan ke mode AI."
RELEASE_USER_MSG = "🤖 Chat kembali ke mode otomatis (AI)."
UNKNOWN_COMMAND_MSG = "❓ Perintah tidak dikenal. Ketik *!help* untuk melihat daftar perintah."
COMMAND_FAILED_MSG = "⚠️ Perintah gagal diproses. Coba lagi nanti."

HELP_MSG = (
    "🛠️ *Perintah Admin:*\n\n"
    "• !ambil <nomor> - Ambil alih chat user\n"
    "• !selesai <nomor> - Kembalikan ke mode AI\n"
    "• !list - Lihat daftar user dalam mode human\n"
    "• !help - Tampilkan bantuan\n\n"
    "📦 *Order:*\n"
    "• !order add Nama|Harga|Detail|Pekerjaan|Deadline\n"
    "• !order view [id]\n"
    "• !order edit <id> <field> <nilai>\n"
    "• !order delete <id>\n"
    "• !order export"
)

ORDER_USAGE_MSG = (
    "📦 *Perintah order:*\n"
    "• !order add Nama|Harga|Detail|Pekerjaan|Deadline\n"
    "• !order view [id]\n"
    "• !order edit <id> <field> <nilai>\n"
    "  field: ordererName, price, details, work, status, deadline\n"
    "  status: todo, on progress, done, canceled\n"
    "• !order delete <id>\n"
    "• !order export"
)

ORDER_FORMAT_MSG = (
    "⚠️ Format order tidak valid.\n\n"
    "Satu baris:\n"
    "!order add Nama|Harga|Detail|Pekerjaan|Deadline\n\n"
    "Atau per baris:\n"
    "!order add\nNama\nHarga\nDetail\nPekerjaan\nDeadline\n\n"
    "Deadline opsional (YYYY-MM-DD, DD/MM/YYYY, DD-MM-YYYY)."
)


def format_order(order: Order) -> str:
    return (
        f"🆔 *{order.id}*\n"
        f"👤 Pemesan: {order.orderer_name}\n"
        f"💰 Harga: {format_price(order.price)}\n"
        f"📝 Detail: {order.details}\n"
        f"🛠️ Pekerjaan: {order.work}\n"
        f"📌 Status: {order.status.value}\n"
        f"🕒 Dibuat: {format_date(order.time, with_time=True)}\n"
        f"⏰ Deadline: {format_date(order.deadline)}"
    )


def chunk_blocks(blocks: List[str], limit: int = 4000, separator: str = "\n\n") -> List[str]:
    """Pack text blocks into messages of at most `limit` characters."""
    chunks: List[str] = []
    current = ""
    for block in blocks:
        # A single oversized block is split hard
        pieces = [block[i:i + limit] for i in range(0, len(block), limit)] or [""]
        for piece in pieces:
            candidate = f"{current}{separator}{piece}" if current else piece
            if len(candidate) <= limit:
                current = candidate
            else:
                chunks.append(current)
                current = piece
    if current:
        chunks.append(current)
    return chunks


def _preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


class MessageRouter:
    """
    USAGE:
        router = MessageRouter(provider, sessions, ledger, knowledge, completion,
                               RateLimiter(), exporter, CleanupScheduler(), settings.bot)
        for message in provider.poll():
            router.handle(message)
    """

    def __init__(
        self,
        provider: MessagingProvider,
        sessions: SessionStore,
        ledger: OrderLedger,
        knowledge: KnowledgeBase,
        completion: CompletionService,
        rate_limiter: RateLimiter,
        exporter: OrderExporter,
        scheduler: CleanupScheduler,
        settings: BotSettings,
    ):
        self.provider = provider
        self.sessions = sessions
        self.ledger = ledger
        self.knowledge = knowledge
        self.completion = completion
        self.rate_limiter = rate_limiter
        self.exporter = exporter
        self.scheduler = scheduler
        self.settings = settings
        self.admin_id = settings.admin_id
        self.allow_list = set(settings.allow_list)

        self._handlers = {
            TakeOver: self._take_over,
            Release: self._release,
            ListHuman: self._list_human,
            Help: self._help,
            OrderAdd: self._order_add,
            OrderView: self._order_view,
            OrderEdit: self._order_edit,
            OrderDelete: self._order_delete,
            OrderExport: self._order_export,
            OrderUsage: self._order_usage,
            CommandUsage: self._command_usage,
            UnknownCommand: self._unknown,
        }

    # ── Entry point ────────────────────────────────────────────────

    def handle(self, message: InboundMessage) -> None:
        sender = message.sender
        body = (message.body or "").strip()

        logger.info("📩 Pesan diterima", extra={"meta": {"from": sender, "body": _preview(body, 80)}})

        if self._is_ignored(message):
            return

        is_admin = bool(self.admin_id) and sender == self.admin_id
        trusted = is_admin or message.from_me
        command = parse_command(body, self.settings.command_prefix) if trusted else None

        # Our own outgoing messages come back through the transport; only commands count
        if message.from_me and command is None:
            return

        if self.settings.restricted and not trusted and sender not in self.allow_list:
            logger.info("Dropped sender outside allowlist", extra={"meta": {"from": sender}})
            return

        if not trusted and self.rate_limiter.check(sender):
            self._send(sender, THROTTLE_MSG)
            return

        if command is None:
            session = self.sessions.get(sender)
            if session is None or not session.greeted:
                self.sessions.ensure(sender)
                self.sessions.mark_greeted(sender)
                self._send(sender, self._welcome_text())
                return

        if command is not None:
            reply_to = self.admin_id if (message.from_me and self.admin_id) else sender
            self._dispatch(command, reply_to)
            return

        if not self.sessions.exists(sender):
            self.sessions.set_mode(sender, Mode.AI)
            self.sessions.mark_greeted(sender)
            self._send(sender, self._welcome_text())
            return

        if HANDOFF_PATTERN.search(body):
            self._handoff(sender)
            return

        session = self.sessions.get(sender)
        if session.mode is Mode.HUMAN:
            self._forward_to_admin(sender, message.body or "")
            return

        self._answer(sender, body)

    def _is_ignored(self, message: InboundMessage) -> bool:
        sender = message.sender or ""
        return (
            message.is_status
            or message.is_group
            or sender == STATUS_BROADCAST
            or sender.endswith("@broadcast")
            or sender.endswith(GROUP_SUFFIX)
        )

    # ── Customer paths ─────────────────────────────────────────────

    def _welcome_text(self) -> str:
        questions = self.knowledge.faq_questions()
        faq_list = "\n".join(f"{i}. {q}" for i, q in enumerate(questions, start=1)) or NO_FAQ_MSG
        return WELCOME_MSG.format(faq_list=faq_list)

    def _handoff(self, sender: str) -> None:
        self.sessions.set_mode(sender, Mode.HUMAN)
        logger.info("Handoff to admin", extra={"meta": {"from": sender}})
        self._send(sender, HANDOFF_ACK_MSG)
        self._notify_admin(HANDOFF_ADMIN_MSG.format(sender=sender))

    def _forward_to_admin(self, sender: str, body: str) -> None:
        self._notify_admin(FORWARD_MSG.format(sender=sender, body=body))

    def _notify_admin(self, text: str) -> None:
        if not self.admin_id:
            logger.warning("ADMIN_ID not configured, admin notification dropped")
            return
        self._send(self.admin_id, text)

    def _answer(self, sender: str, body: str) -> None:
        faq = self.knowledge.find_faq(body)
        if faq is not None:
            logger.info("FAQ answer", extra={"meta": {"to": sender, "question": faq.question}})
            self._send(sender, faq.answer)
            self._remember(sender, body, faq.answer)
            return

        context = self.knowledge.find_context(body)
        prompt = build_prompt(body, context, self.sessions.build_context_block(sender))

        try:
            logger.info(
                "🧠 Generate AI",
                extra={"meta": {"from": sender, "hasContext": context is not None, "prompt": _preview(prompt, 160)}},
            )
            answer = self.completion.complete(prompt)
        except Exception as e:
            logger.error("❌ Error AI", extra={"meta": {"error": str(e)}})
            self._send(sender, AI_ERROR_MSG)
            return

        logger.info("🤖 AI Answer", extra={"meta": {"to": sender, "answer": _preview(answer, 200)}})
        self._send(sender, answer)
        self._remember(sender, body, answer)

    def _remember(self, sender: str, question: str, answer: str) -> None:
        self.sessions.append_memory(sender, Role.USER, question)
        self.sessions.append_memory(sender, Role.BOT, answer)

    # ── Admin commands ─────────────────────────────────────────────

    def _dispatch(self, command, reply_to: str) -> None:
        logger.info("🧩 Perintah admin", extra={"meta": {"cmd": type(command).__name__, "args": vars(command)}})
        handler = self._handlers[type(command)]
        try:
            handler(command, reply_to)
        except ValidationError as e:
            self._send(reply_to, f"⚠️ {e}")
        except NotFoundError as e:
            self._send(reply_to, f"❌ {e}")
        except BackendError as e:
            logger.error("Admin command failed", extra={"meta": {"error": str(e)}})
            self._send(reply_to, f"⚠️ Gagal memproses perintah: {e}")
        except DeskbotError as e:
            logger.error("Admin command failed", extra={"meta": {"error": str(e)}})
            self._send(reply_to, COMMAND_FAILED_MSG)

    def _take_over(self, command: TakeOver, reply_to: str) -> None:
        target = normalize_address(command.target)
        if not self.sessions.exists(target):
            raise NotFoundError(target, kind="Sesi")
        self.sessions.set_mode(target, Mode.HUMAN)
        self._send(reply_to, TAKEOVER_ADMIN_MSG.format(target=target))
        self._send(target, TAKEOVER_USER_MSG)

    def _release(self, command: Release, reply_to: str) -> None:
        target = normalize_address(command.target)
        if not self.sessions.exists(target):
            raise NotFoundError(target, kind="Sesi")
        self.sessions.set_mode(target, Mode.AI)
        self._send(reply_to, RELEASE_ADMIN_MSG.format(target=target))
        self._send(target, RELEASE_USER_MSG)

    def _list_human(self, command: ListHuman, reply_to: str) -> None:
        humans = "\n".join(f"• {sender}" for sender in self.sessions.human_sessions())
        self._send(reply_to, f"📋 Daftar user di mode human:\n{humans or 'Tidak ada user di mode human.'}")

    def _help(self, command: Help, reply_to: str) -> None:
        self._send(reply_to, HELP_MSG)

    def _order_add(self, command: OrderAdd, reply_to: str) -> None:
        fields = parse_order_input(command.text)
        if fields is None:
            self._send(reply_to, ORDER_FORMAT_MSG)
            return
        order = self.ledger.create(
            orderer_name=fields["ordererName"],
            price=fields["price"],
            details=fields["details"],
            work=fields["work"],
            deadline=fields["deadline"],
        )
        self._send(reply_to, f"✅ Order berhasil dibuat!\n\n{format_order(order)}")

    def _order_view(self, command: OrderView, reply_to: str) -> None:
        if command.order_id:
            self._send(reply_to, format_order(self.ledger.get(command.order_id)))
            return

        orders = self.ledger.all()
        if not orders:
            self._send(reply_to, "📦 Belum ada order.")
            return

        blocks = [f"📦 *Daftar Order ({len(orders)})*"] + [format_order(o) for o in orders]
        for chunk in chunk_blocks(blocks, self.settings.chunk_size):
            self._send(reply_to, chunk)

    def _order_edit(self, command: OrderEdit, reply_to: str) -> None:
        order = self.ledger.edit(command.order_id, command.field, command.value)
        self._send(reply_to, f"✅ Order {order.id} diperbarui.\n\n{format_order(order)}")

    def _order_delete(self, command: OrderDelete, reply_to: str) -> None:
        order = self.ledger.delete(command.order_id)
        self._send(reply_to, f"🗑️ Order {order.id} dihapus.")

    def _order_export(self, command: OrderExport, reply_to: str) -> None:
        result = self.exporter.export(self.ledger.all(), self.ledger.summary())

        try:
            sent = self.provider.send_file(reply_to, result.filepath, caption=f"📊 {result.filename}")
        except Exception as e:
            logger.error("Failed to send export", extra={"meta": {"error": str(e), "path": result.filepath}})
            sent = False

        if not sent:
            self._send(reply_to, f"⚠️ File export gagal dikirim. File tersimpan di: {result.filepath}")
            return

        self.scheduler.schedule(result.filepath, self.settings.export_retention_seconds)

    def _order_usage(self, command: OrderUsage, reply_to: str) -> None:
        self._send(reply_to, ORDER_USAGE_MSG)

    def _command_usage(self, command: CommandUsage, reply_to: str) -> None:
        self._send(reply_to, f"ℹ️ Format: {command.usage}")

    def _unknown(self, command: UnknownCommand, reply_to: str) -> None:
        self._send(reply_to, UNKNOWN_COMMAND_MSG)

    # ── Transport ──────────────────────────────────────────────────

    def _send(self, to: Optional[str], text: str) -> bool:
        if not to:
            logger.warning("Message without recipient dropped")
            return False
        sent = self.provider.send_message(to, text)
        if not sent:
            logger.warning("Failed to send message", extra={"meta": {"to": to}})
        return sent
