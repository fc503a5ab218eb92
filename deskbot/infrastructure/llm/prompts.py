"""Prompt templates for AI replies (customers write in Indonesian)."""

GROUNDED_PROMPT = (
    "Kamu adalah asisten customer service. "
    "Jawab singkat, sopan, dan ramah berdasarkan informasi berikut.\n\n"
    "Informasi:\n{context}\n\n"
    "{history}"
    "Pertanyaan: {question}"
)

CAUTIOUS_PROMPT = (
    "Kamu adalah asisten customer service. Jawab singkat, sopan, dan ramah. "
    "Jangan mengarang fakta, harga, atau janji yang tidak kamu ketahui. "
    "Jika kamu tidak yakin atau pertanyaan butuh penanganan khusus, "
    "sarankan pelanggan mengetik \"admin\" untuk bicara dengan admin.\n\n"
    "{history}"
    "Pertanyaan: {question}"
)

HISTORY_BLOCK = "Percakapan sebelumnya:\n{memory}\n\n"


def build_prompt(question: str, context: str = None, memory: str = "") -> str:
    """Grounded prompt when a knowledge passage matched, cautious prompt otherwise."""
    history = HISTORY_BLOCK.format(memory=memory) if memory else ""
    if context:
        return GROUNDED_PROMPT.format(context=context, history=history, question=question)
    return CAUTIOUS_PROMPT.format(history=history, question=question)
