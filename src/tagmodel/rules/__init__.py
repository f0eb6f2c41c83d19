"""Rules layer — rule objects, the overload registry, built-ins and the tag cache."""
