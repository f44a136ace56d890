"""Daily digest of activity across the repositories you own.

Collects, for one lookback window:
- GitHub Actions workflow runs (latest run per workflow decides CI health)
- Pull requests still waiting on an approving review
- Issues opened or touched in the window
and publishes the result as a labelled issue in a digest repository.
"""

__version__ = "1.0.0"
