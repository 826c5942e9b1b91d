"""External data: persistence gateways and market feeds."""
