"""HTTP client module for irsession.

:class:`SyncClient` wraps :class:`httpx.Client` with the login session,
retrying GETs and error mapping.  :func:`save_provided_creds_to_file`
stores credentials from a provider without touching the network.

Example::

    from irsession.client import SyncClient

    with SyncClient(settings) as client:
        client.auth_with_creds_from_file(settings.key_file, settings.creds_file)
        info = client.get_json("/data/member/info")
"""

from irsession.client.sync_client import SyncClient, save_provided_creds_to_file

__all__ = ["SyncClient", "save_provided_creds_to_file"]
