"""
Alfred - Main Entry Point
Run this file to execute the appointment booking agent

    python main.py dentist 2026-02-10 10:00 --swarm --fast
"""

import sys

from alfred.run import main

if __name__ == "__main__":
    flags = {a for a in sys.argv[1:] if a.startswith("--")}
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    main(
        mode="swarm" if "--swarm" in flags else "single",
        service_type=args[0] if len(args) > 0 else "dentist",
        preferred_date=args[1] if len(args) > 1 else None,
        preferred_time=args[2] if len(args) > 2 else "10:00",
        time_scale=0 if "--fast" in flags else None,
    )
