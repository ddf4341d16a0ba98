"""Service modules: reward, level and milestone calculation plus orchestration."""
