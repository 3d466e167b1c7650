"""Caller address recorded on notifications behind a forwarding proxy."""

import httpx
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from core.config import Settings
from helpers import STAGING_SECRET


async def test_source_comes_from_forwarded_header(registry, manager, monkeypatch):
    from core.container import container
    from main import app, proxy_options

    received = []
    notify = manager.notify

    async def recording_notify(notification):
        received.append(notification)
        return await notify(notification)

    monkeypatch.setattr(manager, "notify", recording_notify)
    settings = Settings(_env_file=None, unix_socket="/run/hookdeploy.sock")
    proxied = ProxyHeadersMiddleware(app, trusted_hosts=proxy_options(settings)["forwarded_allow_ips"])

    with container.settings.override(settings), \
            container.target_registry.override(registry), \
            container.deployment_manager.override(manager):
        container.authenticator.reset()
        transport = httpx.ASGITransport(app=proxied)
        async with httpx.AsyncClient(transport=transport, base_url="http://deploy.test") as c:
            response = await c.get(f"/webhook/{STAGING_SECRET}/staging?version=main",
                                   headers={"X-Forwarded-For": "203.0.113.7"})
        await manager.join()
    container.authenticator.reset()

    assert response.status_code == 204
    assert [n.source for n in received] == ["203.0.113.7"]
