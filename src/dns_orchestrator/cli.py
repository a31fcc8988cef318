"""
Click命令行界面

提供用户友好的命令行接口
"""

import json
import sys

import click
from loguru import logger

from .config import Config
from .errors import DnsError
from .manager import DnsManager
from .types import CreateDnsRecordRequest, DnsRecordType, UpdateDnsRecordRequest
from .utils import setup_logging

RECORD_TYPES = [t.value for t in DnsRecordType]


@click.group()
@click.option('--config', type=click.Path(), help='配置文件路径')
@click.option('--verbose', '-v', is_flag=True, help='详细输出')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), help='日志级别')
@click.pass_context
def cli(ctx, config, verbose, log_level):
    """多云DNS管理工具 - Cloudflare / 阿里云 / DNSPod / 华为云"""
    # 确保context对象存在
    ctx.ensure_object(dict)

    # 加载配置
    try:
        app_config = Config(config_file=config)

        # 命令行参数覆盖配置文件设置
        if verbose:
            app_config.verbose = True
            if not log_level:
                app_config.log_level = 'DEBUG'

        if log_level:
            app_config.log_level = log_level

        # 设置日志
        setup_logging(app_config)

        # 存储配置到context
        ctx.obj['config'] = app_config

        logger.debug("命令行界面初始化完成")

    except Exception as e:
        click.echo(f"❌ 初始化失败: {str(e)}", err=True)
        sys.exit(1)


def _get_manager(ctx) -> DnsManager:
    if 'manager' not in ctx.obj:
        ctx.obj['manager'] = DnsManager(ctx.obj['config'])
    return ctx.obj['manager']


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(action: str, error: Exception) -> None:
    if isinstance(error, (DnsError, ValueError)):
        click.echo(f"❌ {action}失败: {str(error)}", err=True)
    else:
        click.echo(f"❌ 发生未知错误: {str(error)}", err=True)
    sys.exit(1)


def _display_table(headers, rows) -> None:
    """以表格形式显示数据"""
    # 计算列宽
    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            col_widths[i] = max(col_widths[i], len(str(cell)))

    separator = "+" + "+".join("-" * (w + 2) for w in col_widths) + "+"

    click.echo(separator)
    header_row = "|" + "|".join(f" {headers[i]:<{col_widths[i]}} " for i in range(len(headers))) + "|"
    click.echo(header_row)
    click.echo(separator)

    for row in rows:
        data_row = "|" + "|".join(f" {str(row[i]):<{col_widths[i]}} " for i in range(len(row))) + "|"
        click.echo(data_row)

    click.echo(separator)


def _display_page_footer(response, unit: str) -> None:
    more = "，还有更多" if response.has_more else ""
    click.echo(f"\n第 {response.page} 页，本页 {len(response.items)} 个{unit}，总计: {response.total_count} 个{unit}{more}")


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='以JSON格式输出')
@click.pass_context
def providers(ctx, as_json):
    """列出支持的DNS提供商"""
    try:
        metadata = _get_manager(ctx).list_providers()

        if as_json:
            _echo_json([m.to_dict() for m in metadata])
            return

        rows = []
        for m in metadata:
            fields = ", ".join(f.key for f in m.required_fields)
            rows.append([m.id.value, m.name, fields, "✅" if m.features.proxy else "-"])
        _display_table(["ID", "名称", "凭证字段", "代理"], rows)

    except Exception as e:
        _fail("获取提供商列表", e)


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='以JSON格式输出')
@click.pass_context
def accounts(ctx, as_json):
    """列出已配置的账户"""
    try:
        account_list = _get_manager(ctx).list_accounts()

        if as_json:
            _echo_json(account_list)
            return

        if not account_list:
            click.echo("没有配置任何账户")
            return

        _display_table(["ID", "名称", "提供商"],
                       [[a['id'], a['name'], a['provider']] for a in account_list])

    except Exception as e:
        _fail("获取账户列表", e)


@cli.command('add-account')
@click.argument('account_id')
@click.option('--provider', required=True, help='提供商名称')
@click.option('--credential', '-c', 'credentials', multiple=True, help='凭证，格式 key=value，可多次指定')
@click.option('--name', help='显示名称')
@click.pass_context
def add_account(ctx, account_id, provider, credentials, name):
    """验证凭证并添加账户"""
    try:
        creds = {}
        for item in credentials:
            if '=' not in item:
                raise ValueError(f"凭证格式错误: {item}，应为 key=value")
            key, value = item.split('=', 1)
            creds[key.strip()] = value.strip()

        click.echo(f"🔐 正在验证 {provider} 凭证...")
        _get_manager(ctx).add_account(account_id, provider, creds, name=name)
        click.echo(f"✅ 账户添加成功: {account_id}")

    except Exception as e:
        _fail("添加账户", e)


@cli.command('remove-account')
@click.argument('account_id')
@click.pass_context
def remove_account(ctx, account_id):
    """删除账户"""
    try:
        _get_manager(ctx).remove_account(account_id)
        click.echo(f"✅ 账户已删除: {account_id}")
    except Exception as e:
        _fail("删除账户", e)


@cli.command()
@click.argument('account_id')
@click.option('--json', 'as_json', is_flag=True, help='以JSON格式输出')
@click.pass_context
def validate(ctx, account_id, as_json):
    """验证账户凭证"""
    try:
        valid = _get_manager(ctx).validate_account(account_id)

        if as_json:
            _echo_json({'accountId': account_id, 'valid': valid})
        else:
            status = "✅ 有效" if valid else "❌ 无效"
            click.echo(f"{account_id}: {status}")

        if not valid:
            sys.exit(1)

    except Exception as e:
        _fail("验证凭证", e)


@cli.command()
@click.argument('account_id')
@click.option('--page', default=1, type=click.IntRange(min=1), help='页码')
@click.option('--page-size', default=20, type=click.IntRange(min=1), help='每页数量')
@click.option('--json', 'as_json', is_flag=True, help='以JSON格式输出')
@click.pass_context
def domains(ctx, account_id, page, page_size, as_json):
    """列出账户下的域名"""
    try:
        response = _get_manager(ctx).list_domains(account_id, page=page, page_size=page_size)

        if as_json:
            _echo_json(response.to_dict())
            return

        if not response.items:
            click.echo("没有找到域名")
            return

        rows = [[d.id, d.name, d.status.value, d.record_count if d.record_count is not None else '-']
                for d in response.items]
        _display_table(["ID", "域名", "状态", "记录数"], rows)
        _display_page_footer(response, "域名")

    except Exception as e:
        _fail("获取域名列表", e)


@cli.command()
@click.argument('account_id')
@click.argument('domain_id')
@click.option('--page', default=1, type=click.IntRange(min=1), help='页码')
@click.option('--page-size', default=20, type=click.IntRange(min=1), help='每页数量')
@click.option('--keyword', help='按记录名称搜索')
@click.option('--type', 'record_type', type=click.Choice(RECORD_TYPES, case_sensitive=False), help='记录类型')
@click.option('--json', 'as_json', is_flag=True, help='以JSON格式输出')
@click.pass_context
def records(ctx, account_id, domain_id, page, page_size, keyword, record_type, as_json):
    """列出域名下的DNS记录"""
    try:
        response = _get_manager(ctx).list_records(
            account_id, domain_id, page=page, page_size=page_size,
            keyword=keyword, record_type=record_type,
        )

        if as_json:
            _echo_json(response.to_dict())
            return

        if not response.items:
            click.echo("没有找到DNS记录")
            return

        rows = []
        for r in response.items:
            rows.append([
                r.id,
                r.name,
                r.record_type.value,
                r.value,
                r.ttl,
                r.priority if r.priority is not None else '-',
                {True: '✅', False: '❌'}.get(r.proxied, '-'),
            ])
        _display_table(["ID", "名称", "类型", "值", "TTL", "优先级", "代理"], rows)
        _display_page_footer(response, "记录")

    except Exception as e:
        _fail("获取DNS记录", e)


def _record_options(func):
    """创建/更新记录共用的选项"""
    options = [
        click.option('--type', 'record_type', required=True,
                     type=click.Choice(RECORD_TYPES, case_sensitive=False), help='记录类型'),
        click.option('--name', required=True, help='主机记录，@ 表示根域名'),
        click.option('--value', required=True, help='记录值'),
        click.option('--ttl', default=600, type=click.IntRange(min=1), help='TTL（秒）'),
        click.option('--priority', type=int, help='优先级（MX/SRV）'),
        click.option('--proxied/--no-proxied', default=None, help='是否开启代理（仅Cloudflare）'),
        click.option('--json', 'as_json', is_flag=True, help='以JSON格式输出'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _echo_record(record, as_json: bool, action: str) -> None:
    if as_json:
        _echo_json(record.to_dict())
    else:
        click.echo(f"✅ {action}成功: {record.name} {record.record_type.value} {record.value} (ID: {record.id})")


@cli.command('create-record')
@click.argument('account_id')
@click.argument('domain_id')
@_record_options
@click.pass_context
def create_record(ctx, account_id, domain_id, record_type, name, value, ttl, priority, proxied, as_json):
    """创建DNS记录"""
    try:
        request = CreateDnsRecordRequest(
            domain_id=domain_id,
            record_type=DnsRecordType.parse(record_type),
            name=name,
            value=value,
            ttl=ttl,
            priority=priority,
            proxied=proxied,
        )
        record = _get_manager(ctx).create_record(account_id, request)
        _echo_record(record, as_json, "记录创建")

    except Exception as e:
        _fail("创建DNS记录", e)


@cli.command('update-record')
@click.argument('account_id')
@click.argument('domain_id')
@click.argument('record_id')
@_record_options
@click.pass_context
def update_record(ctx, account_id, domain_id, record_id, record_type, name, value, ttl, priority, proxied, as_json):
    """更新DNS记录"""
    try:
        request = UpdateDnsRecordRequest(
            domain_id=domain_id,
            record_type=DnsRecordType.parse(record_type),
            name=name,
            value=value,
            ttl=ttl,
            priority=priority,
            proxied=proxied,
        )
        record = _get_manager(ctx).update_record(account_id, record_id, request)
        _echo_record(record, as_json, "记录更新")

    except Exception as e:
        _fail("更新DNS记录", e)


@cli.command('delete-record')
@click.argument('account_id')
@click.argument('domain_id')
@click.argument('record_id')
@click.pass_context
def delete_record(ctx, account_id, domain_id, record_id):
    """删除DNS记录"""
    try:
        _get_manager(ctx).delete_record(account_id, domain_id, record_id)
        click.echo(f"✅ 记录已删除: {record_id}")
    except Exception as e:
        _fail("删除DNS记录", e)


@cli.command('batch-delete')
@click.argument('account_id')
@click.argument('domain_id')
@click.argument('record_ids', nargs=-1, required=True)
@click.option('--threads', '-t', type=click.IntRange(min=1), help='最大并发线程数')
@click.option('--json', 'as_json', is_flag=True, help='以JSON格式输出')
@click.pass_context
def batch_delete(ctx, account_id, domain_id, record_ids, threads, as_json):
    """批量删除DNS记录（多线程）"""
    try:
        config = ctx.obj['config']
        if threads is not None:
            config.max_concurrent_threads = threads

        if not as_json:
            click.echo(f"🗑️  开始批量删除 {len(record_ids)} 条记录")
            click.echo(f"🧵 并发线程数: {config.max_concurrent_threads}")

        result = _get_manager(ctx).batch_delete_records(account_id, domain_id, list(record_ids))

        if as_json:
            _echo_json(result.to_dict())
        else:
            click.echo("\n📊 删除结果:")
            click.echo(f"  ✅ 成功: {result.success_count} 条")
            if result.failed_count > 0:
                click.echo(f"  ❌ 失败: {result.failed_count} 条")
                for failure in result.failures:
                    click.echo(f"    - {failure.record_id}: {failure.reason}")

        if result.failed_count > 0:
            sys.exit(1)

    except Exception as e:
        _fail("批量删除DNS记录", e)


if __name__ == '__main__':
    cli()
