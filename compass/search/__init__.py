"""Hybrid keyword, header and structural task search."""