"""Command line front end: ``tbauth``."""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from tbauth_core.constants import DEFAULT_SYSFS_ROOT
from tbauth_core.crypto import key_fingerprint
from tbauth_core.device import Device
from tbauth_core.enums import Policy, from_token, to_token, tokens
from tbauth_core.errors import BoltError, NotFoundError, PermissionDeniedError
from tbauth_core.reconciler import Reconciler
from tbauth_core.storage import FileStorage, StorageProvider
from tbauth_core.transport import transport_factory
from tbauth_core.utils import now_ts

DEFAULT_DB_PATH = "/var/lib/tb"

app = typer.Typer(help="Authorize Thunderbolt devices and manage their stored policy.", no_args_is_help=True)
db_app = typer.Typer(help="Inspect and edit the device store.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@contextmanager
def _reporting() -> Iterator[None]:
    try:
        yield
    except (BoltError, ValueError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)


def _store(ctx: typer.Context) -> StorageProvider:
    return FileStorage(ctx.obj["db"])


def _reconciler(ctx: typer.Context) -> Reconciler:
    rec = Reconciler(_store(ctx))
    source = transport_factory(ctx.obj["source"], sysfs_root=ctx.obj["sysfs"])
    rec.initial_sync(source.enumerate())
    return rec


def _require_root() -> None:
    if os.geteuid() != 0:
        raise PermissionDeniedError("need root permissions to authorize devices")


def _print_device(dev: Device, store: StorageProvider) -> None:
    mark = "+" if dev.is_authorized else "-"
    typer.echo(f"{mark} {dev.device_name}")
    typer.echo(f"  ├─ vendor:     {dev.vendor_name}")
    typer.echo(f"  ├─ uid:        {dev.uid}")
    typer.echo(f"  ├─ authorized: {to_token(dev.authorized)}")
    typer.echo(f"  └─ in store:   {'yes' if dev.known else 'no'}")
    if dev.known:
        typer.echo(f"      ├─ policy: {to_token(dev.policy)}")
        typer.echo(f"      └─ key:    {'yes' if store.have_key(dev.uid) else 'no'}")
    typer.echo("")


def _print_record(dev: Device) -> None:
    typer.echo(dev.device_name)
    typer.echo(f"  ├─ vendor: {dev.vendor_name}")
    typer.echo(f"  ├─ uid:    {dev.uid}")
    typer.echo(f"  ├─ policy: {to_token(dev.policy)}")
    typer.echo(f"  └─ auto:   {'yes' if dev.autoconnect else 'no'}")
    typer.echo("")


@app.callback()
def main_options(
    ctx: typer.Context,
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", envvar="TBAUTH_DB_PATH", help="Store root directory."),
    source: str = typer.Option("udev", "--source", envvar="TBAUTH_HOTPLUG", help="Hotplug source: udev, sysfs or local."),
    sysfs: str = typer.Option(DEFAULT_SYSFS_ROOT, "--sysfs", envvar="TBAUTH_SYSFS_ROOT", help="Device directory for the sysfs source."),
):
    ctx.obj = {"db": db, "source": source, "sysfs": sysfs}


@app.command("list", help="List attached devices.")
def cmd_list(ctx: typer.Context):
    with _reporting():
        rec = _reconciler(ctx)
        for dev in rec.list_attached():
            _print_device(dev, rec.store)


@app.command("monitor", help="Print device events until interrupted.")
def cmd_monitor(ctx: typer.Context):
    with _reporting():
        rec = Reconciler(_store(ctx))
        rec.connect("device-added", lambda d: typer.echo(
            f"{now_ts()} A: {d.uid}, {d.device_name}, {d.vendor_name}, "
            f"{to_token(d.authorized)}, {'yes' if d.known else 'no'}, {to_token(d.policy)}"))
        rec.connect("device-changed", lambda d: typer.echo(
            f"{now_ts()} C: {d.uid}, {d.device_name}, {to_token(d.authorized)}, {'yes' if d.known else 'no'}"))
        rec.connect("device-removed", lambda d: typer.echo(f"{now_ts()} R: {d.uid}, {d.device_name}"))
        rec.run(transport_factory(ctx.obj["source"], sysfs_root=ctx.obj["sysfs"]))


@app.command("authorize", help="Authorize an attached device.")
def cmd_authorize(
    ctx: typer.Context,
    uid: str,
    store: bool = typer.Option(False, "--store", "-s", help="Store device."),
    auto: bool = typer.Option(False, "--auto", "-a", help="Auto-authorize device (implies --store)."),
):
    with _reporting():
        _require_root()
        rec = _reconciler(ctx)
        dev = rec.authorize(uid, store=store, auto=auto)
        typer.echo(f"authorized {dev.uid}")


@app.command("auto", help="Authorize a device if it is stored with policy auto.")
def cmd_auto(ctx: typer.Context, uid: str):
    with _reporting():
        _require_root()
        rec = _reconciler(ctx)
        if rec.auto_authorize(uid):
            typer.echo(f"authorized {uid}")
        else:
            typer.echo(f"device {uid} not set up for auto authorization")


@app.command("create-key", help="Generate key material for a device (kept if present).")
def cmd_create_key(ctx: typer.Context, uid: str):
    with _reporting():
        store = _store(ctx)
        try:
            dev = store.get(uid)
        except NotFoundError:
            dev = Device(uid=uid)
        handle = store.create_key(dev)
        state = "created" if handle.created else "exists"
        typer.echo(f"{state}: {handle.path} ({key_fingerprint(store.read_key(uid))})")


@db_app.command("list", help="List stored devices.")
def cmd_db_list(ctx: typer.Context):
    with _reporting():
        store = _store(ctx)
        for uid in store.list_ids():
            try:
                dev = store.get(uid)
            except BoltError as e:
                typer.echo(f"warning: skipping {uid}: {e}", err=True)
                continue
            _print_record(dev)


@db_app.command("get", help="Show one stored device.")
def cmd_db_get(ctx: typer.Context, uid: str):
    with _reporting():
        _print_record(_store(ctx).get(uid))


@db_app.command("set", help="Create or update a stored device.")
def cmd_db_set(
    ctx: typer.Context,
    uid: str,
    policy: Optional[str] = typer.Option(None, "--policy", help=f"One of: {', '.join(tokens(Policy))}."),
    autoconnect: Optional[bool] = typer.Option(None, "--autoconnect/--no-autoconnect"),
    name: Optional[str] = typer.Option(None, "--name"),
    vendor: Optional[str] = typer.Option(None, "--vendor"),
):
    with _reporting():
        store = _store(ctx)
        try:
            dev = store.get(uid)
        except NotFoundError:
            if name is None or vendor is None:
                raise NotFoundError(f"device {uid} not in store; --name and --vendor are needed to create it")
            dev = Device(uid=uid)
        if name is not None:
            dev.device_name = name
        if vendor is not None:
            dev.vendor_name = vendor
        if policy is not None:
            dev.policy = from_token(Policy, policy)
        if autoconnect is not None:
            dev.autoconnect = autoconnect
        store.put(dev)
        _print_record(dev)


@db_app.command("delete", help="Remove a stored device and its key.")
def cmd_db_delete(ctx: typer.Context, uid: str):
    with _reporting():
        _store(ctx).delete(uid)
        typer.echo(f"deleted {uid}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
