from __future__ import annotations

DOMAIN = "home_stats"

DEFAULT_CONFIG_PATH = "settings.json"

# Hive (Omnia) endpoints, fixed by the vendor
AUTH_REGION = "eu-west-1"
AUTH_ENDPOINT = "https://cognito-idp.eu-west-1.amazonaws.com"
NODE_ENDPOINT = "https://api.prod.bgchprod.info/omnia/nodes/"

HIVE_CONTENT_TYPE = "application/vnd.alertme.zoo-6.2+json"
HIVE_CLIENT_HEADER = "ESP"

OPENWEATHERMAP_ENDPOINT = "https://api.openweathermap.org/data/2.5/weather"

# Seconds per network call (HTTP, Cognito, InfluxDB)
REQUEST_TIMEOUT = 30

# Measurement names / tags
MEASUREMENT_THERMOSTAT = "thermostat"
MEASUREMENT_WEATHER = "weather"
TAG_UNIT = "unit"
UNIT_TEMPERATURE = "temperature"
FIELD_CURRENT = "current"

# Config file keys
CONF_THERMOSTAT = "thermostat"
CONF_WEATHER = "weather"
CONF_DATABASE = "database"
CONF_LOG_LEVEL = "logLevel"

CONF_ENABLED = "enabled"
CONF_INTERVAL = "interval"
CONF_USERNAME = "username"
CONF_PASSWORD = "password"
CONF_THERMOSTAT_ID = "thermostatID"
CONF_AUTO_BOOST = "autoBoost"
CONF_MIN_TEMPERATURE = "minTemperature"
CONF_TARGET_DURATION = "targetDuration"
CONF_TARGET_TEMPERATURE = "targetTemperature"
CONF_HIVE_SSO = "hiveSSO"
CONF_POOL_ID = "poolID"
CONF_CLIENT_ID = "publicCognitoClientID"

CONF_CITY = "city"
CONF_COUNTRY = "country"
CONF_API_KEY = "apiKey"
CONF_UNITS = "units"

CONF_URI = "uri"
CONF_DATABASE_NAME = "database"

DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
