"""
Root conftest.py — adds the project root to sys.path so tests can import
weighbridge_dashboard without an editable install, matching how main.py
and app.py run.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(__file__))
