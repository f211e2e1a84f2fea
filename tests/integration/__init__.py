"""
Integration Tests Package for the Parking Booking Reports

This package contains integration tests that drive the report controller
against in-memory repositories and download sinks.

Integration tests focus on:
1. Refresh and classification with a fixed clock
2. Error handling across the repository and sink boundaries
3. CSV, PDF and invoice exports end to end
"""

import sys
from pathlib import Path

# Add the project root to Python path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))
