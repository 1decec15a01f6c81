"""Exploratory analysis of federal surveillance aircraft transponder detections.

This package provides the building blocks to load per-aircraft detection CSVs,
attach registration metadata, convert timestamps to local time, place points
in states and urban areas, and summarise the result as tables and charts.
"""
