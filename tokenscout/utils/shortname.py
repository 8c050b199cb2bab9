import logging

class ShortNameFilter(logging.Filter):
    """Adds %(shortname)s, e.g. `discovery-scanner` for tokenscout.sources.discovery.scanner."""
    def filter(self, record):
        path = record.name.split(".")
        record.shortname = "-".join(path[-2:])
        return True
