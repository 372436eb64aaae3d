"""
Credential data model.

A 'Credential' is everything a client needs to attach to one transport
thread as one user: the endpoint, a bearer token, the user's transport
identity and the transport thread id. It is derived on every request and
never stored server-side; clients may cache it briefly (see
'messaging_toolkit.client.credential_cache').
"""

from messaging_toolkit.utils.models import CamelModel


class Credential(CamelModel):
    transport_user_id: str
    display_name: str
    endpoint_url: str
    token: str
    transport_thread_id: str
    topic: str
