"""
app/vrt package marker.
"""
