"""Yarnstash: a yarn and project inventory tracker."""

__version__ = "0.1.0"
