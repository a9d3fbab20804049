# generate_daily.py
import logging
import subprocess

from app import ConfigError, FactClient, Settings, update_page

COMMIT_MESSAGE = "Update daily fact"


def _git(*args):
    return subprocess.run(["git", *args], capture_output=True, text=True)


def commit_if_changed(page_path, message: str = COMMIT_MESSAGE) -> bool:
    """Stage the page and commit it only when the staged diff is non-empty."""
    add = _git("add", "--", str(page_path))
    if add.returncode != 0:
        raise RuntimeError(f"git add failed: {add.stderr.strip()}")

    diff = _git("diff", "--cached", "--quiet", "--", str(page_path))
    if diff.returncode == 0:
        logging.info("No changes to commit.")
        return False
    if diff.returncode != 1:
        raise RuntimeError(f"git diff failed: {diff.stderr.strip()}")

    commit = _git("commit", "-m", message, "--", str(page_path))
    if commit.returncode != 0:
        raise RuntimeError(f"git commit failed: {commit.stderr.strip()}")
    logging.info(f"Committed {page_path}: {message}")
    return True


def parse_args(argv=None):
    import argparse
    ap = argparse.ArgumentParser(description="Daily fact run: update the page and optionally commit it")
    ap.add_argument("--page", default=None, help="HTML page to update")
    ap.add_argument("--commit", action="store_true", help="Commit the page if it changed")
    ap.add_argument("--message", default=COMMIT_MESSAGE, help="Commit message")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env()
    except ConfigError:
        return 1
    page = args.page or settings.page_path

    now = settings.now()
    result = update_page(page, FactClient(settings), settings, now=now)
    if result is None:
        return 1
    print(f"Updated {page} at {now.isoformat(timespec='seconds')}")

    if args.commit:
        try:
            commit_if_changed(page, args.message)
        except (OSError, RuntimeError) as e:
            logging.error(f"Commit step failed: {e}")
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
