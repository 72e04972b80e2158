"""
CivicReport - Visualization Module
"""

from civicreport.visualization.map_generator import create_report_map, render_report_map_html

__all__ = ["create_report_map", "render_report_map_html"]
