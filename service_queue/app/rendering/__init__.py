"""
Rendering package: waiting-room and block pages plus stylesheet theming.
"""
