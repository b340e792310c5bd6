from messenger.bootstrap.config.loader import get_cli_args
from messenger.bootstrap.deps import get_cp
from messenger.core.helpers.utils import setup_signal_handler, setup_logging, scan


@scan("messenger.bootstrap.handlers")
def main():
    cli = get_cli_args()
    setup_logging(cli.log_level)

    controlplane = get_cp()
    loop = controlplane.loop

    try:
        with setup_signal_handler() as stop_event:
            loop.run_until_complete(controlplane.start(stop_event))
    except KeyboardInterrupt:
        pass
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


if __name__ == "__main__":
    main()
