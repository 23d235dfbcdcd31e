"""
gh-stack: manage stacks of dependent GitHub pull requests.
"""
import logging
import sys

LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s'
VERBOSE_LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Chatty below WARNING; only let them through at -vv
LIBRARY_LOGGERS = ("github", "urllib3", "git")

def setup_logging(verbose: int = 0) -> None:
    """Configure the root logger for one CLI run.

    Args:
        verbose: Verbosity level
            0 = INFO and above, so every git/github call is shown
            1 = INFO with logger names
            2 = DEBUG, including PyGithub/GitPython/urllib3 internals
    """
    level = logging.DEBUG if verbose >= 2 else logging.INFO
    fmt = VERBOSE_LOG_FORMAT if verbose >= 1 else LOG_FORMAT

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    # stderr, so `rebase` output on stdout can be piped straight into bash
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, LOG_DATE_FORMAT))
    root.addHandler(handler)

    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose >= 2 else logging.WARNING)
