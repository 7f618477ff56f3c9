"""
Command Line Interface for RCI.
"""
import click

from .. import __version__
from ..MANAGERS.service_orchestrator import ProvisioningOrchestrator


class SetupUsageError(click.UsageError):
    """
    Usage error exiting with status 1 instead of click's 2.
    """
    exit_code = 1


class SetupCommand(click.Command):
    """
    Command whose usage errors exit with status 1.
    """
    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = SetupUsageError.exit_code
            raise


@click.command(cls=SetupCommand, context_settings={'help_option_names': ['-h', '--help']})
@click.option('--verify', is_flag=True, help='Only verify the current setup')
@click.option('--pull-model', is_flag=True, help='Only pull the embedding model')
@click.option('--project-dir', '-C', default='.', show_default=True,
              type=click.Path(exists=True, file_okay=False), help='Directory holding the compose file and .env')
@click.option('--env-file', default='.env', show_default=True, help='Configuration file name')
@click.option('--compose-file', '-f', default='docker-compose.yml', show_default=True,
              help='Compose file name')
@click.version_option(__version__, prog_name='rci')
@click.pass_context
def cli(ctx, verify, pull_model, project_dir, env_file, compose_file):
    """
    Roo Code Indexing Docker setup.

    Starts Qdrant and Ollama, waits for them to become healthy and pulls the
    embedding model. Without options the full setup runs.
    """
    if verify and pull_model:
        raise SetupUsageError('--verify and --pull-model cannot be combined', ctx=ctx)

    orchestrator = ProvisioningOrchestrator(
        project_dir=project_dir,
        env_file=env_file,
        compose_file=compose_file,
    )

    if verify:
        result = orchestrator.verify_only()
    elif pull_model:
        result = orchestrator.pull_model_only()
    else:
        result = orchestrator.run_full_setup()

    ctx.exit(result.exit_code)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
