"""
ptsd - PRD → Seed → BDD → Tests → Implementation pipeline tracker.

Run from any project directory containing a .ptsd/ folder to validate
pipeline ordering, gate reviews, check commits, and pick the next task.
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
