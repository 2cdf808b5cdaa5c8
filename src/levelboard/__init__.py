"""levelboard: submission review queue and reviewer shifts."""
