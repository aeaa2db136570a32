"""LearnHub - e-learning backend."""
