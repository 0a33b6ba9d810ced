"""REST route modules, one APIRouter (or a public/admin pair) per resource."""
