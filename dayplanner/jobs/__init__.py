# Jobs package init
"""Out-of-process entry points (console scripts) that reuse the service layer."""
