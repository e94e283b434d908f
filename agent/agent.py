"""
Office Attendance Tracker — Desktop Agent
=========================================
Records, once per poll cycle, whether this machine is on a known office
network, keeps one fact per calendar day in a local csv/json file, and
reports the month's attendance against the configured threshold.

Nothing leaves the machine: no server, no screenshots, no input capture.

Usage:
    python agent.py                 # poll until stopped
    python agent.py status          # one sample + monthly summary
    python agent.py discover        # suggest office networks
"""

import sys

from presence_core.runner import run_with_auto_restart


if __name__ == "__main__":
    sys.exit(run_with_auto_restart())
