"""create-m10n - scaffold a Convex + TanStack Start app deployed on Vercel."""

from importlib.metadata import version

__version__ = version("create-m10n")

# create-convex template used for the project skeleton.
CONVEX_TEMPLATE = "tanstack-start"

# Written by `convex dev`, holds the deployment URL for the frontend.
CONVEX_ENV_FILE = ".env.local"
CONVEX_URL_VAR = "VITE_CONVEX_URL"

# Needed by the Vercel build to run `convex deploy`.
DEPLOY_KEY_VAR = "CONVEX_DEPLOY_KEY"

# Vercel environments that receive the variables above.
DEPLOY_ENVIRONMENTS = ("production", "preview", "development")

INITIAL_COMMIT_MESSAGE = "Initial commit: Convex + TanStack Start + Vercel"

CONVEX_DASHBOARD_URL = "https://dashboard.convex.dev"
VERCEL_DASHBOARD_URL = "https://vercel.com/dashboard"
