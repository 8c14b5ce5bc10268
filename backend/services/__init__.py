"""
Services module for Meli Lister
"""
from .price_log import PriceLogService

__all__ = ['PriceLogService']
