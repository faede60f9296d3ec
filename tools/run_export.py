import argparse
import logging
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def _configure_logging(level: str, log_file: Path | None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Export a Slack thread's captioned images as a print-ready PDF."
    )
    parser.add_argument("--channel", required=True, help="频道ID（如 C0123456）")
    parser.add_argument("--thread-ts", required=True, help="线程根消息ts")
    parser.add_argument("--title", default="", help="可选：文档标题（默认 PrintExport <日期>）")
    parser.add_argument("--category", default="", help="可选：文档分类（写入默认标题）")
    parser.add_argument(
        "--config",
        default="config/collate_runtime.yaml",
        help="运行期配置（默认：config/collate_runtime.yaml）",
    )
    parser.add_argument(
        "--dry-run",
        default="",
        help="可选：只把PDF写到该路径，不上传",
    )
    args = parser.parse_args()

    _add_backend_to_path()
    from collate.config import reload_config  # type: ignore
    from collate.models import ExportStatus  # type: ignore
    from collate.pipeline import ExportExecutor, create_job  # type: ignore
    from collate.slack import SlackClient  # type: ignore

    config = reload_config(args.config)
    _configure_logging(
        config.logging.log_level,
        config.logging.log_file if config.logging.log_to_file else None,
    )
    if not config.slack.bot_token:
        print("缺少 bot token（设置 COLLATE_SLACK__BOT_TOKEN 或配置文件 slack.bot_token）")
        return 2

    executor = ExportExecutor(SlackClient(), config=config)
    job = create_job(
        args.channel,
        args.thread_ts,
        title=args.title or None,
        category=args.category or None,
    )
    dry_run = Path(args.dry_run) if args.dry_run else None
    executor.execute(job, dry_run_path=dry_run)

    print(f"{job.status.value}: {job.filename or '-'} ({job.page_count} pages, {job.document_size} bytes)")
    for flag in job.flags:
        print(f"  flag: {flag}")
    for error in job.errors:
        print(f"  error: {error}")
    return 0 if job.status in (ExportStatus.SUCCEEDED, ExportStatus.EMPTY) else 1


if __name__ == "__main__":
    raise SystemExit(main())
