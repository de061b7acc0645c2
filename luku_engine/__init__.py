"""Luku gamification and leaderboard engine"""
from luku_engine.engine import GamificationEngine, get_engine

__all__ = ["GamificationEngine", "get_engine"]
