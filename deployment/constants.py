from pathlib import Path

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

MANIFEST_FILENAME = "marketplace.yml"

#
# Environments
#

LOCAL = "local"
SEPOLIA = "sepolia"

SUPPORTED_ENVIRONMENTS = [LOCAL, SEPOLIA]

# ape network names that never need explorer or chain id checks
LOCAL_NETWORKS = ["local"]

#
# Contracts
#

SETTINGS = "Settings"
VAULT = "Vault"
APPEALS = "Appeals"
PROVIDERS = "Providers"
DEALS = "Deals"

# dependency order
MARKETPLACE_CONTRACTS = [SETTINGS, VAULT, APPEALS, PROVIDERS, DEALS]
