"""
chat_service.py — Prompt assembly for /api/chat
Pure functions: user content from text + attachments, the system prompt for
the selected mode, and the final message list sent to the completion router.
"""

from schemas import ChatTurn, FileAttachment

EMPTY_MESSAGE_PLACEHOLDER = "Please analyze the attached files."
APOLOGY = "I apologize, but I could not generate a response."

CANVAS_PROMPT = (
    "You are a helpful AI assistant in canvas mode. Focus on creating well-structured, detailed content "
    "suitable for editing and iteration. Format your responses with proper headings, sections, and markdown "
    "when appropriate. Create comprehensive content that can be refined and edited. This content will be "
    "displayed in an editable panel for the user to modify and iterate on."
)

DEFAULT_PROMPT = (
    "You are a helpful AI assistant with web search capabilities. You can analyze text files, images, "
    "documents, and search the web for current information. When provided with search results, integrate "
    "them naturally into your response and cite sources when relevant. Provide clear and detailed responses "
    "based on all available information."
)

MEMORY_INSTRUCTION = "\nUse this information to personalize your responses and reference relevant context from previous conversations."

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Completion parameters for the user-facing reply
CHAT_MAX_TOKENS = 1500
CHAT_TEMPERATURE = 0.7
CHAT_SEARCH_RESULTS = 3


def render_file(file: FileAttachment) -> str:
    if not file.content:
        return f"\n\nFile: {file.name} ({file.type}, {file.size} bytes) - No content extracted"
    if file.type.startswith("text/") or file.type == "application/json":
        return f"\n\nFile: {file.name}\nContent:\n{file.content}"
    if file.type.startswith("image/"):
        return f"\n\nImage: {file.name} (image data provided)"
    if file.type == DOCX_TYPE or file.name.endswith(".docx"):
        return f"\n\nDocument: {file.name}\nExtracted Text:\n{file.content}"
    if file.type == "application/pdf" or file.name.endswith(".pdf"):
        return f"\n\nPDF: {file.name}\nContent:\n{file.content}"
    return f"\n\nFile: {file.name}\nContent:\n{file.content}"


def build_user_content(message: str, files: list[FileAttachment], search_block: str = "") -> str:
    """Message text (or a placeholder when only files were sent), then search results, then files."""
    content = message if message.strip() else EMPTY_MESSAGE_PLACEHOLDER
    content += search_block
    for file in files:
        content += render_file(file)
    return content


def build_system_prompt(canvas_mode: bool, memory_context: str = "") -> str:
    prompt = CANVAS_PROMPT if canvas_mode else DEFAULT_PROMPT
    if memory_context:
        prompt += "\n\n" + memory_context + MEMORY_INSTRUCTION
    return prompt


def build_message_list(system_prompt: str, history: list[ChatTurn], user_content: str) -> list[dict]:
    messages = [{"role": "system", "content": system_prompt}]
    for turn in history:
        messages.append({
            "role": "user" if turn.role == "user" else "assistant",
            "content": turn.content,
        })
    messages.append({"role": "user", "content": user_content})
    return messages
