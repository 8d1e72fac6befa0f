class ReportUnavailable(Exception):
    """The traffic-accounting tool could not produce a report this cycle."""


class ResolverStartupError(Exception):
    def __init__(self, reason):
        Exception.__init__(self, "Unable to start the DNS resolver: %s" % reason)
