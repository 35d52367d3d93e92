"""Output formats for command results and host listings."""
