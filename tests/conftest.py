"""
Pytest configuration for pybehave tests.
"""
import sys
from pathlib import Path

# Add the project root to Python path so tests can import pybehave without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
