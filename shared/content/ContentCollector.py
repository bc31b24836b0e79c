"""Collects vectorizable content from the chat, attachments and world info."""

from pydantic import BaseModel, Field

from shared.content.ContentSourceInterface import ContentSourceInterface
from shared.content.TagFilter import TagFilter
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperMacros import substitute_params
from shared.models.config import VectorSettings
from shared.models.content import ChatMessage, ContentItem
from shared.models.extraction import Diagnostic, ExtractionStats


class CollectionReport(BaseModel):
    """Collected items plus what tag filtering skipped along the way.

    Attributes:
        items:       Items in order chat, files, world info.
        diagnostics: Tag expressions or exclusions that were skipped.
        stats:       Tag-filter block counts over the visible selected chat messages.
    """

    items: list[ContentItem] = []
    diagnostics: list[Diagnostic] = []
    stats: ExtractionStats = Field(default_factory=ExtractionStats)


class ContentCollector:
    """Reads the three content sources and applies the tag filter to chat messages."""

    def __init__(self, helper_config: HelperConfig, tag_filter: TagFilter | None = None):
        self.logging = helper_config.get_logger()
        self._tag_filter = tag_filter or TagFilter(helper_config=helper_config)

    ##########################################
    ################ HELPERS #################
    ##########################################

    def select_chat_messages(self, settings: VectorSettings, messages: list[ChatMessage]) -> list[tuple[int, ChatMessage]]:
        """Slice the chat by the configured range and apply the type and hidden filters.

        Returns:
            list[tuple[int, ChatMessage]]: (absolute message index, message) pairs.
        """
        chat_settings = settings.selected_content.chat
        start = max(chat_settings.range.start, 0)
        end = chat_settings.range.end
        window = messages[start:] if end == -1 else messages[start:end]

        selected = []
        for offset, message in enumerate(window):
            if message.is_system and not chat_settings.include_hidden:
                continue
            if message.is_user and not chat_settings.types.user:
                continue
            if not message.is_user and not chat_settings.types.assistant:
                continue
            selected.append((start + offset, message))
        return selected

    ##########################################
    ############### COLLECTORS ###############
    ##########################################

    def _collect_chat(self, settings: VectorSettings, source: ContentSourceInterface, report: CollectionReport) -> None:
        messages = source.get_chat_messages()
        if not messages:
            return
        tag_list = settings.selected_content.chat.get_tag_list()
        macros = source.get_macro_values()

        for index, message in self.select_chat_messages(settings, messages):
            result = self._tag_filter.extract_detailed(
                substitute_params(message.mes, macros),
                tag_list,
                settings.content_blacklist,
            )
            report.diagnostics.extend(result.diagnostics)
            if not message.is_system:
                report.stats.add(result.stats)

            # an item whose blocks were all filtered out is still emitted with empty text
            report.items.append(ContentItem(
                type="chat",
                text=result.text,
                metadata={
                    "index": index,
                    "is_user": message.is_user,
                    "name": message.name,
                    "is_hidden": message.is_system,
                },
            ))

    async def _collect_files(self, settings: VectorSettings, source: ContentSourceInterface, report: CollectionReport) -> None:
        selected_urls = set(settings.selected_content.files.selected)
        for attachment in source.get_file_attachments():
            if attachment.url not in selected_urls:
                continue
            text = await source.fetch_file_text(attachment.url)
            report.items.append(ContentItem(
                type="file",
                text=text,
                metadata={
                    "name": attachment.name,
                    "url": attachment.url,
                    "size": attachment.size,
                },
            ))

    async def _collect_world_info(self, settings: VectorSettings, source: ContentSourceInterface, report: CollectionReport) -> None:
        selection = settings.selected_content.world_info.selected
        for entry in await source.get_world_info_entries():
            if not entry.world or not entry.content or entry.disable:
                continue
            if entry.uid not in selection.get(entry.world, []):
                continue
            report.items.append(ContentItem(
                type="world_info",
                text=entry.content,
                metadata={
                    "world": entry.world,
                    "uid": entry.uid,
                    "key": ", ".join(entry.key),
                    "comment": entry.comment,
                },
            ))

    async def collect_with_report(self, settings: VectorSettings, source: ContentSourceInterface) -> CollectionReport:
        """Collect every selected item and keep the tag-filter diagnostics.

        Args:
            settings (VectorSettings): Active settings (selection, tags, blacklist).
            source (ContentSourceInterface): The host content.

        Returns:
            CollectionReport: Items in order chat, files, world info.

        Raises:
            NetworkError: If a selected attachment cannot be fetched.
        """
        report = CollectionReport()
        selection = settings.selected_content
        if selection.chat.enabled:
            self._collect_chat(settings, source, report)
        if selection.files.enabled:
            await self._collect_files(settings, source, report)
        if selection.world_info.enabled:
            await self._collect_world_info(settings, source, report)

        self.logging.debug(
            "Collected %d content items (%d diagnostics)", len(report.items), len(report.diagnostics)
        )
        return report

    async def collect(self, settings: VectorSettings, source: ContentSourceInterface) -> list[ContentItem]:
        """Collect every selected item. See collect_with_report()."""
        report = await self.collect_with_report(settings, source)
        return report.items
