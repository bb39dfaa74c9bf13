"""EdgeCast: game predictions, player props and parlay suggestions for NFL and NBA."""

from edgecast.data._http_headers import patch_nba_api_headers

patch_nba_api_headers()
