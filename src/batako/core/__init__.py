"""Core building blocks: errors, time helpers and the job scheduler."""
