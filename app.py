import warnings
warnings.filterwarnings("ignore")


from medledger.api import create_app
from medledger.config import load_config
from medledger.logger import setup_logging

# Load config (MEDLEDGER_CONFIG / MEDLEDGER_* env vars)
config = load_config()
setup_logging(config)

app = create_app(config)
print(f"[Flask] Ledger owner: {config.owner_address}")


if __name__ == "__main__":
    app.run(host=config.bind_host, port=config.port, debug=config.debug)
