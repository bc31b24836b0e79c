"""One-shot runner for the vectorization commands.

Reads a host context snapshot from a JSON file and runs one of the
commands against it with the persisted settings.

Usage:
    python -m services.vector_sync.vector_sync_runner CONTEXT_JSON {process|preview|export} [--out DIR]
"""

import argparse
import asyncio
import json
import os

from services.vector_sync.VectorizationService import VectorizationService
from shared.clients.host.HostClient import HostClient
from shared.clients.vector.VectorClientManager import VectorClientManager
from shared.content.ContentCollector import ContentCollector
from shared.content.ContentSourceHost import ContentSourceHost
from shared.content.ContentViews import build_export_filename, build_export_text, build_preview
from shared.errors import StateError, VectorsError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.content import HostContext
from shared.settings.SettingsManager import SettingsManager
from shared.settings.SettingsStoreFile import SettingsStoreFile
from shared.tasks.CollectionCache import CollectionCache
from shared.tasks.TaskRegistry import TaskRegistry

COMMANDS = ("process", "preview", "export")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Vectorize, preview or export the selected chat content.")
    parser.add_argument("context", help="Path to a JSON file holding the host context snapshot.")
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--out", default=".", help="Directory for the export file.")
    return parser.parse_args(argv)


def load_context(path: str) -> HostContext:
    with open(path, encoding="utf-8") as f:
        return HostContext.model_validate(json.load(f))


async def main(argv: list[str] | None = None) -> int:
    """Run one command. Returns the process exit code."""
    args = parse_args(argv)
    logger = setup_logging("vector_sync")
    config = HelperConfig(logger=logger)

    settings_manager = SettingsManager(helper_config=config, store=SettingsStoreFile(helper_config=config))
    settings_manager.load()
    settings = settings_manager.get_settings()
    if not settings.master_enabled:
        logger.warning("Master switch is off, nothing to do.")
        return 1

    host_client = HostClient(helper_config=config)
    vector_manager = VectorClientManager(helper_config=config, settings_provider=settings_manager.get_settings)
    source = ContentSourceHost(context=load_context(args.context), host_client=host_client)
    collector = ContentCollector(helper_config=config)

    await host_client.boot()
    await vector_manager.boot()
    try:
        if args.command == "preview":
            report = await collector.collect_with_report(settings, source)
            print(build_preview(report, settings).model_dump_json(indent=2))

        elif args.command == "export":
            chat_id = source.get_chat_id()
            if not chat_id:
                raise StateError("No active chat.")
            items = await collector.collect(settings, source)
            if not items:
                raise StateError("No content selected for export.")
            now = config.get_now()
            path = os.path.join(args.out, build_export_filename(source.get_character_name(), chat_id, now))
            with open(path, "w", encoding="utf-8") as f:
                f.write(build_export_text(items, source.get_character_name(), now))
            logger.info("Exported %d items to %s", len(items), path, color="green")

        else:
            cache = CollectionCache(helper_config=config)
            registry = TaskRegistry(
                helper_config=config,
                settings_manager=settings_manager,
                vector_manager=vector_manager,
                cache=cache,
            )
            service = VectorizationService(
                helper_config=config,
                settings_manager=settings_manager,
                collector=collector,
                vector_manager=vector_manager,
                task_registry=registry,
                cache=cache,
            )
            task = await service.vectorize(source)
            logger.info("Created task %s: %s", task.task_id, task.name, color="green")
    except VectorsError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    finally:
        await settings_manager.flush()
        await vector_manager.close()
        await host_client.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
