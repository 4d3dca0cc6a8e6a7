import argparse
import asyncio
import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .application.bootstrap import bootstrap_app
from .application.container import AppConfig
from .application.metrics import configure_metrics_logger
from .application.workflow import TokenVariantsWorkflow
from .domain import AlgorithmSettings, SearchType
from .domain.names import get_file_name
from .infrastructure.metrics import metrics

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


def _parse_api_keys(raw: str) -> dict[str, str]:
    keys: dict[str, str] = {}
    for item in raw.split(","):
        user, sep, key = item.partition("=")
        if sep and user.strip() and key.strip():
            keys[user.strip()] = key.strip()
    return keys


def load_app_config() -> AppConfig:
    allowed_hosts_raw = os.getenv("IMAGE_ALLOWED_HOSTS", "").strip()
    allowed_hosts = {
        host.strip().lower()
        for host in allowed_hosts_raw.split(",")
        if host.strip()
    } or None
    config = AppConfig(
        db_path=os.getenv("DB_PATH", "token-variants.db"),
        settings_path=os.getenv("SETTINGS_PATH", "token-variants.yaml"),
        compendium_path=os.getenv("COMPENDIUM_PATH", "").strip() or None,
        data_root=os.getenv("DATA_ROOT", "").strip() or None,
        forge_api_url=os.getenv("FORGE_API_URL", "https://forge-vtt.com/api").strip(),
        forge_api_keys=_parse_api_keys(os.getenv("FORGE_API_KEYS", "")),
        can_modify_settings=_flag("CAN_MODIFY_SETTINGS", "1"),
        image_allowed_hosts=allowed_hosts,
        max_image_size_bytes=int(os.getenv("IMAGE_MAX_BYTES", "5000000")),
        preview_cache_dir=os.getenv("PREVIEW_CACHE_DIR", "").strip() or None,
    )
    logger.debug(
        "Config loaded: db_path=%s, settings=%s, compendium=%s, data_root=%s, forge_users=%s, image_hosts=%s",
        config.db_path,
        config.settings_path,
        config.compendium_path or "-",
        config.data_root or "-",
        ",".join(sorted(config.forge_api_keys)) or "-",
        ",".join(sorted(config.image_allowed_hosts)) if config.image_allowed_hosts else "any",
    )
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="token-variants",
        description="Match actor and token art to image files by name.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("cache", help="Scan cached search paths and rebuild the image cache")
    commands.add_parser("paths", help="Show the parsed search paths, Forge folders expanded")

    search = commands.add_parser("search", help="Find images matching a name")
    search.add_argument("name")
    search.add_argument("--type", choices=[kind.value for kind in SearchType], default=SearchType.BOTH.value)
    mode = search.add_mutually_exclusive_group()
    mode.add_argument("--exact", action="store_true", help="Require the simplified file name to equal the name")
    mode.add_argument("--partial", action="store_true", help="Match file names containing the name")
    mode.add_argument("--fuzzy", action="store_true", help="Rank file names by similarity")
    search.add_argument("--threshold", type=float, help="Minimum fuzzy similarity (0..1)")
    search.add_argument("--limit", type=int, help="Maximum fuzzy results per term")
    search.add_argument("--no-keywords", action="store_true", help="Search the full name only")

    mapping = commands.add_parser("map", help="Map art onto the actors of a compendium")
    mapping.add_argument("compendium")
    for flag, help_text in (
        ("--auto-apply", "Apply the first match instead of queueing for art selection"),
        ("--missing-only", "Only actors still using the default image"),
        ("--diff-images", "Search portrait and token images separately"),
        ("--ignore-portrait", "Leave portraits alone (with --diff-images)"),
        ("--ignore-token", "Leave tokens alone (with --diff-images)"),
        ("--sync-images", "Copy a lone portrait/token image onto the other first"),
        ("--inc-keywords", "Also search the individual words of each name"),
        ("--cache", "Rebuild the image cache before mapping"),
        ("--hide-images", "Do not show current images in the art selection queue"),
        ("--no-art-select", "With --auto-apply, do not queue actors left without art"),
    ):
        mapping.add_argument(flag, action="store_true", help=help_text)
    mapping.add_argument("--preview-dir", type=Path, help="Write a preview sheet per queued actor")

    configs = commands.add_parser("token-config", help="Manage custom token configs")
    config_commands = configs.add_subparsers(dest="action", required=True)
    config_commands.add_parser("list")
    set_config = config_commands.add_parser("set")
    set_config.add_argument("img_src")
    set_config.add_argument("fields", help='JSON object, e.g. \'{"light.dim": 10}\'')
    set_config.add_argument("--name", help="Image name (defaults to the file name)")
    remove_config = config_commands.add_parser("remove")
    remove_config.add_argument("img_src")
    remove_config.add_argument("--name", help="Image name (defaults to the file name)")
    return parser


def _search_algorithm(args: argparse.Namespace, default: AlgorithmSettings) -> AlgorithmSettings:
    data = default.to_mapping()
    if args.exact:
        data.update(exact=True, fuzzy=False)
    elif args.partial:
        data.update(exact=False, fuzzy=False)
    elif args.fuzzy:
        data.update(exact=False, fuzzy=True)
    if args.threshold is not None:
        data["fuzzy_threshold"] = args.threshold
    if args.limit is not None:
        data["fuzzy_limit"] = args.limit
    return AlgorithmSettings.from_mapping(data)


def _mapping_overrides(args: argparse.Namespace) -> dict:
    return {
        "compendium": args.compendium,
        "auto_apply": args.auto_apply,
        "missing_only": args.missing_only,
        "diff_images": args.diff_images,
        "ignore_portrait": args.ignore_portrait,
        "ignore_token": args.ignore_token,
        "sync_images": args.sync_images,
        "inc_keywords": args.inc_keywords,
        "cache": args.cache,
        "show_images": not args.hide_images,
        "auto_display_art_select": not args.no_art_select,
    }


async def run(args: argparse.Namespace) -> str:
    config = load_app_config()
    metrics_path = os.getenv("METRICS_LOG_PATH", "").strip()
    if metrics_path:
        metrics.configure(configure_metrics_logger(metrics_path))

    async with bootstrap_app(config) as container:
        workflow = TokenVariantsWorkflow(
            catalog=container.catalog,
            search_service=container.search_service,
            token_configs=container.token_configs,
            preview=container.preview_service,
            presenter=container.presenter,
            mapper=container.mapper,
        )
        if args.command == "cache":
            return await workflow.cache()
        if args.command == "paths":
            return await workflow.search_paths()
        if args.command == "search":
            return await workflow.search(
                args.name,
                search_type=SearchType.parse(args.type),
                algorithm=_search_algorithm(args, container.search_service.algorithm),
                ignore_keywords=args.no_keywords,
            )
        if args.command == "map":
            return await workflow.map_compendium(_mapping_overrides(args), preview_dir=args.preview_dir)
        if args.action == "list":
            return await workflow.list_token_configs()
        img_name = args.name or get_file_name(args.img_src)
        if args.action == "set":
            fields = json.loads(args.fields)
            if not isinstance(fields, dict):
                raise RuntimeError("token config fields must be a JSON object")
            return await workflow.save_token_config(args.img_src, img_name, fields)
        return await workflow.remove_token_config(args.img_src, img_name)


def main() -> None:
    args = build_parser().parse_args()
    try:
        output = asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down")
        return
    except Exception:
        logger.exception("Command '%s' failed", args.command)
        raise
    print(output)


if __name__ == "__main__":
    main()
