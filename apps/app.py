import os, sys, signal, argparse
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))
from smartalert.runtime import find_config, load_config, build_runtime
from smartalert.logging_config import setup_logging, resolve_logging_from_env_and_cfg


def main():
    p = argparse.ArgumentParser(description="Smart Alert temperature monitor")
    p.add_argument('--config', help='settings file (default: config/config.yaml or config.yaml)')
    p.add_argument('--debug', action='store_true', help='no start/stop info mails')
    a = p.parse_args()

    cfg = load_config(a.config)
    if a.debug:
        cfg.debug = True
    enabled, level, log_file = resolve_logging_from_env_and_cfg(cfg)
    log_handler = setup_logging(enabled=enabled, level=level, log_file=log_file,
                                generations=cfg.logging.generations, rotate_days=cfg.timing.log_rotate_days)

    app = build_runtime(cfg, log_handler=log_handler, config_path=find_config(a.config))
    signal.signal(signal.SIGINT, lambda *x: app.loop.quit())
    signal.signal(signal.SIGTERM, lambda *x: app.loop.quit())
    signal.signal(signal.SIGHUP, lambda *x: app.loop.post(app.reload_settings))
    try:
        app.start()
        app.loop.mainloop()
    finally:
        app.shutdown()


if __name__ == "__main__":
    sys.exit(main())
