"""Source checks that run outside the stage pipeline."""
