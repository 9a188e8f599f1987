"""Depth module for resolving hazard distances."""

from .depth_resolver import DepthResolver

__all__ = ['DepthResolver']
