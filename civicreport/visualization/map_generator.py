"""
Map Visualization Module for CivicReport

Generates the interactive admin map of reports using Folium, with one
marker per report coloured by moderation status.
"""

import html
import logging
from typing import Optional, Sequence

import folium
from folium.plugins import MarkerCluster

from civicreport.core.constants import DEFAULT_MAP_CENTER
from civicreport.database.models import Report, ReportStatus

logger = logging.getLogger(__name__)


STATUS_COLORS = {
    ReportStatus.PENDING_MODERATION: "orange",
    ReportStatus.APPROVED: "green",
    ReportStatus.REJECTED: "red",
    ReportStatus.NEEDS_REVIEW: "purple",
    ReportStatus.RESOLVED: "blue",
}


def get_status_color(status: ReportStatus) -> str:
    """Marker color for a report status."""
    return STATUS_COLORS[status]


def create_report_map(
    reports: Sequence[Report],
    center: Optional[tuple[float, float]] = None,
    zoom: int = 12,
    title: str = "CivicReport - Reports",
    cluster_markers: bool = True,
) -> folium.Map:
    """
    Create an interactive map with report markers.

    Args:
        reports: Reports to plot
        center: Map center (lat, lon). Averaged from the reports if None.
        zoom: Initial zoom level (1-18)
        title: Map title
        cluster_markers: Cluster markers when zoomed out

    Returns:
        Folium Map object
    """
    if not reports:
        logger.debug("No reports provided, creating empty map")
        return folium.Map(location=center or DEFAULT_MAP_CENTER, zoom_start=4)

    if center is None:
        lats = [r.latitude for r in reports]
        lons = [r.longitude for r in reports]
        center = (sum(lats) / len(lats), sum(lons) / len(lons))

    report_map = folium.Map(location=center, zoom_start=zoom, tiles="OpenStreetMap")

    if cluster_markers:
        marker_group = MarkerCluster(name="Reports")
    else:
        marker_group = folium.FeatureGroup(name="Reports")

    for report in reports:
        color = get_status_color(report.status)
        created = report.created_at.strftime("%Y-%m-%d %H:%M") if report.created_at else "-"

        popup_html = f"""
        <div style="font-family: Arial; min-width: 200px;">
            <h4 style="margin: 0;">{report.category.value}</h4>
            <hr style="margin: 5px 0;">
            <p style="margin: 0;">{html.escape(report.description or "")}</p>
            <b>Status:</b> {report.status.value}<br>
            <b>Accuracy:</b> {report.accuracy_meters:.0f} m<br>
            <b>Created:</b> {created} UTC<br>
            <a href="{html.escape(report.public_photo_url, quote=True)}" target="_blank" rel="noreferrer">Photo</a>
        </div>
        """

        folium.CircleMarker(
            location=[report.latitude, report.longitude],
            radius=9,
            popup=folium.Popup(popup_html, max_width=300),
            color=color,
            fill=True,
            fill_color=color,
            fill_opacity=0.7,
            weight=2,
        ).add_to(marker_group)

    marker_group.add_to(report_map)

    title_html = f'''
    <div style="position: fixed;
                top: 10px; left: 50px;
                background-color: rgba(255,255,255,0.9);
                padding: 10px 20px;
                border-radius: 5px;
                z-index: 9999;
                font-family: Arial;">
        <h3 style="margin: 0;">{html.escape(title)}</h3>
        <p style="margin: 5px 0 0 0; color: #555; font-size: 12px;">{len(reports)} reports</p>
    </div>
    '''
    report_map.get_root().html.add_child(folium.Element(title_html))

    legend_rows = "".join(
        f'<span style="color: {color};">●</span> {status.value}<br>'
        for status, color in STATUS_COLORS.items()
    )
    legend_html = f'''
    <div style="position: fixed; bottom: 30px; right: 30px;
                background-color: rgba(255,255,255,0.9); padding: 10px;
                border-radius: 5px; z-index: 9999;
                font-family: Arial; font-size: 12px;">
        <b>Report Status</b><br>
        {legend_rows}
    </div>
    '''
    report_map.get_root().html.add_child(folium.Element(legend_html))

    logger.info(f"Created map with {len(reports)} reports")
    return report_map


def render_report_map_html(reports: Sequence[Report], **kwargs) -> str:
    """Standalone HTML document for the report map."""
    return create_report_map(reports, **kwargs).get_root().render()
