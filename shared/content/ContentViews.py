"""Preview, export and hidden-message projections over collected content."""

from datetime import datetime

from shared.content.ContentCollector import CollectionReport
from shared.models.config import VectorSettings
from shared.models.content import ChatMessage, ContentItem
from shared.models.views import (
    HiddenMessage,
    PreviewFile,
    PreviewMessage,
    PreviewView,
    PreviewWorld,
    PreviewWorldEntry,
)

EMPTY_SECTION = "无"
HIDDEN_PREVIEW_LENGTH = 100


def build_preview(report: CollectionReport, settings: VectorSettings) -> PreviewView:
    """Group the collected items by type for display.

    Args:
        report (CollectionReport): Output of ContentCollector.collect_with_report().
        settings (VectorSettings): Active settings, used to decide whether tag statistics apply.

    Returns:
        PreviewView: Files, world info grouped by world, chat messages and filter statistics.
    """
    view = PreviewView(total_items=len(report.items), diagnostics=report.diagnostics)
    worlds: dict[str, PreviewWorld] = {}

    for item in report.items:
        if item.type == "file":
            view.files.append(PreviewFile(
                name=item.metadata.get("name", ""),
                size_kb=round((item.metadata.get("size") or 0) / 1024, 2),
                text=item.text,
            ))
        elif item.type == "world_info":
            world = item.metadata.get("world", "")
            group = worlds.setdefault(world, PreviewWorld(world=world))
            group.entries.append(PreviewWorldEntry(
                uid=item.metadata.get("uid", 0),
                comment=item.metadata.get("comment", ""),
                text=item.text,
            ))
        else:
            view.chat.append(PreviewMessage(
                index=item.metadata.get("index", 0),
                author="user" if item.metadata.get("is_user") else "assistant",
                name=item.metadata.get("name", ""),
                is_hidden=bool(item.metadata.get("is_hidden")),
                text=item.text,
            ))

    view.world_info = list(worlds.values())
    chat_settings = settings.selected_content.chat
    if chat_settings.enabled and chat_settings.get_tag_list():
        view.stats = report.stats
    return view


def build_export_filename(character_name: str | None, chat_id: str | None, now: datetime) -> str:
    label = character_name or chat_id or "unknown"
    return f"vectors_export_{label}_{int(now.timestamp() * 1000)}.txt"


def build_export_text(items: list[ContentItem], character_name: str | None, now: datetime) -> str:
    """Render the collected items as the plain-text export document.

    Sections appear in the order files, world info, chat. An empty section
    holds the EMPTY_SECTION placeholder.
    """
    lines = [
        f"Character: {character_name or 'unknown'}",
        f"Time: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
    ]

    files = [i for i in items if i.type == "file"]
    world_info = [i for i in items if i.type == "world_info"]
    chat = [i for i in items if i.type == "chat"]

    lines.append("=== files ===")
    if files:
        for item in files:
            lines += [f"File: {item.metadata.get('name', '')}", "Content:", item.text, ""]
    else:
        lines += [EMPTY_SECTION, ""]

    lines.append("=== world info ===")
    if world_info:
        for item in world_info:
            lines += [
                f"World: {item.metadata.get('world', '')}",
                f"Comment: {item.metadata.get('comment') or EMPTY_SECTION}",
                f"Content: {item.text}",
                "",
            ]
    else:
        lines += [EMPTY_SECTION, ""]

    lines.append("=== chat ===")
    if chat:
        for item in chat:
            lines += [f"#{item.metadata.get('index', 0)}: {item.text}", ""]
    else:
        lines += [EMPTY_SECTION, ""]

    return "\n".join(lines) + "\n"


def list_hidden_messages(messages: list[ChatMessage]) -> list[HiddenMessage]:
    hidden = []
    for index, message in enumerate(messages):
        if not message.is_system:
            continue
        text = message.mes
        if len(text) > HIDDEN_PREVIEW_LENGTH:
            text = text[:HIDDEN_PREVIEW_LENGTH] + "..."
        hidden.append(HiddenMessage(index=index, text=text, is_user=message.is_user, name=message.name))
    return hidden
