# Business logic services - registry, confirmation and reporting
