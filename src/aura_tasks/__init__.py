"""Turn free-form text, audio or images into a conflict-free local task schedule."""
