"""Command line interface for the upload queue."""
import click

from shared.utils import CorruptedImageError
from .app import ShelterUploadApp
from .upload_item import UploadQueueError


def _print_item(item):
    line = f"{item.id}  {item.status.value:<9} {item.progress:5.1f}%  retries={item.retry_count}  {item.file_name}"
    if item.uploaded_url:
        line += f"  -> {item.uploaded_url}"
    if item.error:
        line += f"  ({item.error})"
    click.echo(line)


@click.group()
@click.pass_context
def cli(ctx):
    """Queue and upload shelter animal media."""
    ctx.obj = ctx.obj or ShelterUploadApp()
    ctx.call_on_close(ctx.obj.shutdown)


@cli.command('add')
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--animal', 'animal_id', required=True)
@click.option('--shelter', 'shelter_id', required=True)
@click.option('--kennel', 'kennel_id')
@click.option('--room', 'room_id')
@click.option('--walk', 'walk_id')
@click.option('--intake', is_flag=True, help='Files belong to an intake form.')
@click.option('--no-upload', is_flag=True, help='Only queue the files.')
@click.pass_obj
def add_command(app, paths, animal_id, shelter_id, kennel_id, room_id, walk_id, intake, no_upload):
    """Process media files and queue them for upload."""
    app.startup(restore=False)
    try:
        items = app.add_media(paths, animal_id, shelter_id, kennel_id=kennel_id, room_id=room_id,
                              walk_id=walk_id, is_intake_form=intake, process=not no_upload)
    except CorruptedImageError as e:
        raise click.ClickException(str(e))
    click.echo(f"Queued {len(items)} file(s)")
    if not no_upload:
        for item in app.upload_queue.process():
            _print_item(item)


@cli.command('status')
@click.pass_obj
def status_command(app):
    """Show queued uploads."""
    app.startup(process=False)
    items = app.upload_queue.items()
    if not items:
        click.echo("Upload queue is empty")
    for item in items:
        _print_item(item)


@cli.command('process')
@click.option('--timeout', type=float, default=None, help='Seconds to wait for uploads.')
@click.pass_obj
def process_command(app, timeout):
    """Upload every pending item."""
    app.startup(process=False)
    for item in app.upload_queue.process(timeout=timeout):
        _print_item(item)


@cli.command('retry')
@click.argument('upload_id')
@click.pass_obj
def retry_command(app, upload_id):
    """Retry a failed upload."""
    app.startup(process=False)
    try:
        app.upload_queue.retry(upload_id)
    except UploadQueueError as e:
        raise click.ClickException(str(e))
    app.upload_queue.wait()
    remaining = {item.id: item for item in app.upload_queue.items()}
    if upload_id in remaining:
        _print_item(remaining[upload_id])
    else:
        # Acknowledged and removed after a successful upload
        click.echo(f"Upload {upload_id} completed")


@cli.command('remove')
@click.argument('upload_id')
@click.pass_obj
def remove_command(app, upload_id):
    """Remove an item that is not uploading."""
    app.startup(process=False)
    try:
        app.upload_queue.remove(upload_id)
    except UploadQueueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Removed {upload_id}")


@cli.command('clear')
@click.confirmation_option(prompt='Remove every queued upload?')
@click.pass_obj
def clear_command(app):
    """Remove every item that is not uploading."""
    app.startup(process=False)
    removed = 0
    for item in app.upload_queue.items():
        if not item.is_uploading:
            app.upload_queue.remove(item.id)
            removed += 1
    click.echo(f"Removed {removed} upload(s)")
