"""CLI — 组件安装命令"""

from __future__ import annotations

import sys

import click
import yaml

from compinstall.core.config import DEFAULT_CONFIG_FILE, get_config, init_config
from compinstall.core.exceptions import CompInstallError
from compinstall.core.pkg import InFlightRegistry, InstallEvents, Package
from compinstall.core.pkg.models import MANIFEST_FILE
from compinstall.core.pkg.paths import split_slug


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(urls)
    group.add_command(show_config)


def _progress_events() -> InstallEvents:
    """把安装事件打印到终端"""
    events = InstallEvents()
    events.on("dependency", lambda parent, child: click.echo(f"  install : {child.slug}"))
    events.on("file", lambda pkg, file, url: click.echo(f"    fetch : {pkg.name}:{file}"))
    events.on("exists", lambda pkg: click.echo(f"   exists : {pkg.slug}"))
    events.on("installed", lambda pkg: click.echo(f" complete : {pkg.slug}"))
    return events


@click.command()
@click.argument("packages", nargs=-1, required=True)
@click.option("--config", "config_path", default=DEFAULT_CONFIG_FILE, help="配置文件路径")
@click.option("--dest", "-d", default=None, help="安装根目录")
@click.option("--remote", "-r", "remotes", multiple=True, help="镜像地址（可多次指定，按顺序尝试）")
@click.option("--force", "-f", is_flag=True, help="已安装时强制重新安装")
@click.option("--concurrency", "-c", type=click.IntRange(min=0), default=None, help="并发上限")
@click.option("--proxy", default=None, help="HTTP 代理地址")
@click.option("--netrc", "netrc_path", default=None, help="netrc 凭据文件")
def install(
    packages: tuple[str, ...],
    config_path: str,
    dest: str | None,
    remotes: tuple[str, ...],
    force: bool,
    concurrency: int | None,
    proxy: str | None,
    netrc_path: str | None,
) -> None:
    """安装组件包，PACKAGES 形如 owner/name[@version]"""
    try:
        init_config(config_path)
    except (CompInstallError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    options = get_config().package_options()
    overrides = {
        "dest": dest,
        "remotes": list(remotes) or None,
        "force": force or None,
        "concurrency": concurrency,
        "proxy": proxy,
        "netrc": netrc_path,
    }
    options.update({k: v for k, v in overrides.items() if v is not None})

    registry = InFlightRegistry()
    events = _progress_events()
    failed = 0
    installed = 0
    for spec in packages:
        try:
            name, version = split_slug(spec)
            pkg = Package(name, version, registry=registry, events=events, **options)
            click.echo(f"  install : {pkg.slug}")
            result = pkg.install()
        except CompInstallError as e:
            failed += 1
            click.echo(f"    error : {e}", err=True)
            continue
        installed += sum(1 for r in result.walk() if r.installed)
    click.echo(f"  summary : {installed} installed, {failed} failed")
    if failed:
        sys.exit(1)


@click.command()
@click.argument("package")
@click.option("--dest", "-d", default="components", help="安装根目录")
@click.option("--remote", "-r", default=None, help="镜像地址")
def urls(package: str, dest: str, remote: str | None) -> None:
    """显示包的 slug、本地目录与清单地址（不做任何网络请求）"""
    name, version = split_slug(package)
    pkg = Package(name, version, dest=dest, remotes=[remote] if remote else None, proxy="")
    click.echo(f"slug     : {pkg.slug}")
    click.echo(f"dirname  : {pkg.dirname()}")
    click.echo(f"manifest : {pkg.url(MANIFEST_FILE)}")


@click.command(name="config")
@click.option("--config", "config_path", default=DEFAULT_CONFIG_FILE, help="配置文件路径")
def show_config(config_path: str) -> None:
    """显示生效的配置（配置文件 + 默认值）"""
    try:
        init_config(config_path)
    except (CompInstallError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(yaml.safe_dump(get_config().to_dict(), allow_unicode=True, sort_keys=False), nl=False)
