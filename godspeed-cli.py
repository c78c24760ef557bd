#!/usr/bin/env python3
"""
godspeed-cli

Send a task to Godspeed using shorthand syntax. Tasks that cannot be sent
are cached and retried on the next run.

Usage:
    ./godspeed-cli.py <task text>            # Send a task
    echo "<task text>" | ./godspeed-cli.py   # Read the task from stdin
    ./godspeed-cli.py                        # Only retry cached tasks (empty stdin)

Shorthand:
    @list       destination list (at most one)
    .label      label (repeatable)
    :minutes    duration
    n: text     notes (everything after n:)

Examples:
    # Task in the Work list, labelled Writing, 2 hours, with notes
    ./godspeed-cli.py Write blog post @Work .Writing :120 n: Focus on API

    # Check how text is parsed without sending it
    ./godspeed-cli.py --dry-run Call mum .family :15
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from godspeed_cli import main

if __name__ == '__main__':
    sys.exit(main())
