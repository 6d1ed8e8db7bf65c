"""Unified portfolio catalogue built from bundled and live datasets."""

from src.portfolio.aggregator import DatasetSpec, PortfolioAggregator, load_default_aggregator
from src.portfolio.assets import AssetResolver
from src.portfolio.models import PortfolioCategory, PortfolioImage, PortfolioStats, UnifiedPortfolioEntry

__all__ = [
    "AssetResolver",
    "DatasetSpec",
    "PortfolioAggregator",
    "PortfolioCategory",
    "PortfolioImage",
    "PortfolioStats",
    "UnifiedPortfolioEntry",
    "load_default_aggregator",
]
