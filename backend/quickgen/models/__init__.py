from quickgen.models.creation import Creation, CreationType

__all__ = ["Creation", "CreationType"]
