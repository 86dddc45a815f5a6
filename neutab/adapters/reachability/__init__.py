from neutab.adapters.reachability.probe import probe_http_reachable

__all__ = ["probe_http_reachable"]
