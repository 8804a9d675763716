from __future__ import annotations

from typing import Dict, List

from captrie.core.identity.capabilities import Capability
from captrie.core.trie.registry import CapabilityRegistry

STANDARD_MODULE = "captrie.std"
STANDARD_TYPES_MODULE = "captrie.std.types"

_CATALOG_FILE = "captrie/core/catalog/standard.py"

# Behavioral trait markers, grouped the way the traits are usually taught.
MARKER_TRAITS: Dict[str, str] = {
    "Clone": "Values can be duplicated explicitly",
    "Copy": "Values can be duplicated by plain bitwise copy",
    "Send": "Values can be moved to another thread",
    "Sync": "Values can be shared between threads",
    "Sized": "Values have a size known up front",
    "Unpin": "Values can be moved after being pinned",
    "UnwindSafe": "Values stay consistent across a caught panic",
    "RefUnwindSafe": "Shared references stay consistent across a caught panic",
    "Default": "A default value can be constructed",
    "Drop": "Values run custom code when dropped",
}

COMPARISON_TRAITS: Dict[str, str] = {
    "Eq": "Equality is an equivalence relation",
    "PartialEq": "Values can be compared for equality",
    "Ord": "Values have a total order",
    "PartialOrd": "Values can be compared for ordering",
    "Hash": "Values can be hashed",
}

FORMAT_TRAITS: Dict[str, str] = {
    "Debug": "Values have a developer-facing representation",
    "Display": "Values have a user-facing representation",
    "Binary": "Values format as binary digits",
    "Octal": "Values format as octal digits",
    "LowerHex": "Values format as lower-case hex digits",
    "UpperHex": "Values format as upper-case hex digits",
    "LowerExp": "Values format in lower-case scientific notation",
    "UpperExp": "Values format in upper-case scientific notation",
    "Pointer": "Values format as a memory address",
    "FmtWrite": "Values accept formatted text (fmt::Write)",
}

ITERATOR_TRAITS: Dict[str, str] = {
    "Iterator": "Values yield a sequence of items",
    "IntoIterator": "Values can be turned into an iterator",
    "ExactSizeIterator": "The iterator knows its exact remaining length",
    "DoubleEndedIterator": "The iterator can yield from both ends",
    "FusedIterator": "The iterator keeps returning None once exhausted",
    "FromIterator": "Values can be collected from an iterator",
    "Extend": "Values can be extended from an iterator",
}

OPERATOR_TRAITS: Dict[str, str] = {
    "Add": "Supports the + operator",
    "Sub": "Supports the - operator",
    "Mul": "Supports the * operator",
    "Div": "Supports the / operator",
    "Rem": "Supports the % operator",
    "Neg": "Supports unary -",
    "Not": "Supports unary !",
    "BitAnd": "Supports the & operator",
    "BitOr": "Supports the | operator",
    "BitXor": "Supports the ^ operator",
    "Shl": "Supports the << operator",
    "Shr": "Supports the >> operator",
    "AddAssign": "Supports +=",
    "SubAssign": "Supports -=",
    "MulAssign": "Supports *=",
    "DivAssign": "Supports /=",
    "RemAssign": "Supports %=",
    "BitAndAssign": "Supports &=",
    "BitOrAssign": "Supports |=",
    "BitXorAssign": "Supports ^=",
    "ShlAssign": "Supports <<=",
    "ShrAssign": "Supports >>=",
    "Index": "Supports indexed reads",
    "IndexMut": "Supports indexed writes",
    "Deref": "Dereferences to another type",
    "DerefMut": "Dereferences mutably to another type",
}

CONVERSION_TRAITS: Dict[str, str] = {
    "From": "Can be built from another type",
    "Into": "Can be turned into another type",
    "TryFrom": "Can be built from another type, fallibly",
    "TryInto": "Can be turned into another type, fallibly",
    "AsRef": "Can be borrowed as a reference to another type",
    "AsMut": "Can be borrowed as a mutable reference to another type",
    "Borrow": "Can be borrowed as an equivalent type",
    "BorrowMut": "Can be mutably borrowed as an equivalent type",
    "ToOwned": "Borrowed data can produce an owned copy",
    "ToString": "Values can be rendered to an owned string",
    "FromStr": "Values can be parsed from a string",
    "Any": "Values support runtime type inspection",
}

IO_TRAITS: Dict[str, str] = {
    "Future": "Values complete asynchronously",
    "Error": "Values describe an error",
    "Read": "Values are a byte source",
    "IoWrite": "Values are a byte sink (io::Write)",
    "Seek": "Values support a movable cursor",
    "BufRead": "Values are a buffered byte source",
}

STANDARD_CAPABILITIES: Dict[str, str] = {
    **MARKER_TRAITS,
    **COMPARISON_TRAITS,
    **FORMAT_TRAITS,
    **ITERATOR_TRAITS,
    **OPERATOR_TRAITS,
    **CONVERSION_TRAITS,
    **IO_TRAITS,
}

# Concrete-type markers: holding one says "this value is exactly that type",
# which is what CONCRETE-tier guards test. Maps marker name -> type path.
PRIMITIVE_TYPES: Dict[str, str] = {
    "Unit": "()",
    "bool": "bool",
    "char": "char",
    "str": "str",
    "u8": "u8",
    "u16": "u16",
    "u32": "u32",
    "u64": "u64",
    "u128": "u128",
    "usize": "usize",
    "i8": "i8",
    "i16": "i16",
    "i32": "i32",
    "i64": "i64",
    "i128": "i128",
    "isize": "isize",
    "f32": "f32",
    "f64": "f64",
    "NonZeroU8": "core::num::NonZeroU8",
    "NonZeroU16": "core::num::NonZeroU16",
    "NonZeroU32": "core::num::NonZeroU32",
    "NonZeroU64": "core::num::NonZeroU64",
    "NonZeroU128": "core::num::NonZeroU128",
    "NonZeroUsize": "core::num::NonZeroUsize",
    "NonZeroI8": "core::num::NonZeroI8",
    "NonZeroI16": "core::num::NonZeroI16",
    "NonZeroI32": "core::num::NonZeroI32",
    "NonZeroI64": "core::num::NonZeroI64",
    "NonZeroI128": "core::num::NonZeroI128",
    "NonZeroIsize": "core::num::NonZeroIsize",
}

CORE_TYPES: Dict[str, str] = {
    "Option": "Option<T>",
    "Result": "Result<T, E>",
    "Cell": "core::cell::Cell<T>",
    "RefCell": "core::cell::RefCell<T>",
    "UnsafeCell": "core::cell::UnsafeCell<T>",
    "OnceCell": "core::cell::OnceCell<T>",
    "ManuallyDrop": "core::mem::ManuallyDrop<T>",
    "MaybeUninit": "core::mem::MaybeUninit<T>",
    "Pin": "core::pin::Pin<T>",
    "PhantomData": "core::marker::PhantomData<T>",
    "PhantomPinned": "core::marker::PhantomPinned",
    "Range": "core::ops::Range<T>",
    "RangeFrom": "core::ops::RangeFrom<T>",
    "RangeTo": "core::ops::RangeTo<T>",
    "RangeInclusive": "core::ops::RangeInclusive<T>",
    "RangeToInclusive": "core::ops::RangeToInclusive<T>",
    "RangeFull": "core::ops::RangeFull",
    "Bound": "core::ops::Bound<T>",
    "Duration": "core::time::Duration",
    "Wrapping": "core::num::Wrapping<T>",
    "Saturating": "core::num::Saturating<T>",
    "Poll": "core::task::Poll<T>",
    "Waker": "core::task::Waker",
    "AtomicBool": "core::sync::atomic::AtomicBool",
    "AtomicI8": "core::sync::atomic::AtomicI8",
    "AtomicI16": "core::sync::atomic::AtomicI16",
    "AtomicI32": "core::sync::atomic::AtomicI32",
    "AtomicI64": "core::sync::atomic::AtomicI64",
    "AtomicIsize": "core::sync::atomic::AtomicIsize",
    "AtomicU8": "core::sync::atomic::AtomicU8",
    "AtomicU16": "core::sync::atomic::AtomicU16",
    "AtomicU32": "core::sync::atomic::AtomicU32",
    "AtomicU64": "core::sync::atomic::AtomicU64",
    "AtomicUsize": "core::sync::atomic::AtomicUsize",
    "AtomicPtr": "core::sync::atomic::AtomicPtr<T>",
}

ALLOC_TYPES: Dict[str, str] = {
    "String": "alloc::string::String",
    "CString": "alloc::ffi::CString",
    "Box": "alloc::boxed::Box<T>",
    "Rc": "alloc::rc::Rc<T>",
    "Arc": "alloc::sync::Arc<T>",
    "Weak": "alloc::rc::Weak<T>",
    "ArcWeak": "alloc::sync::Weak<T>",
    "Vec": "alloc::vec::Vec<T>",
    "VecDeque": "alloc::collections::VecDeque<T>",
    "LinkedList": "alloc::collections::LinkedList<T>",
    "BinaryHeap": "alloc::collections::BinaryHeap<T>",
    "BTreeMap": "alloc::collections::BTreeMap<K, V>",
    "BTreeSet": "alloc::collections::BTreeSet<T>",
    "Cow": "alloc::borrow::Cow<'static, str>",
}

STD_TYPES: Dict[str, str] = {
    "Mutex": "std::sync::Mutex<T>",
    "RwLock": "std::sync::RwLock<T>",
    "Condvar": "std::sync::Condvar",
    "Barrier": "std::sync::Barrier",
    "Once": "std::sync::Once",
    "OnceLock": "std::sync::OnceLock<T>",
    "Thread": "std::thread::Thread",
    "JoinHandle": "std::thread::JoinHandle<T>",
    "LocalKey": "std::thread::LocalKey<T>",
    "File": "std::fs::File",
    "Metadata": "std::fs::Metadata",
    "FileType": "std::fs::FileType",
    "DirEntry": "std::fs::DirEntry",
    "Permissions": "std::fs::Permissions",
    "OpenOptions": "std::fs::OpenOptions",
    "ReadDir": "std::fs::ReadDir",
    "Path": "std::path::Path",
    "PathBuf": "std::path::PathBuf",
    "IpAddr": "std::net::IpAddr",
    "Ipv4Addr": "std::net::Ipv4Addr",
    "Ipv6Addr": "std::net::Ipv6Addr",
    "SocketAddr": "std::net::SocketAddr",
    "SocketAddrV4": "std::net::SocketAddrV4",
    "SocketAddrV6": "std::net::SocketAddrV6",
    "TcpStream": "std::net::TcpStream",
    "TcpListener": "std::net::TcpListener",
    "UdpSocket": "std::net::UdpSocket",
    "Command": "std::process::Command",
    "Child": "std::process::Child",
    "Stdio": "std::process::Stdio",
    "ExitStatus": "std::process::ExitStatus",
    "Output": "std::process::Output",
    "CStr": "std::ffi::CStr",
    "OsStr": "std::ffi::OsStr",
    "OsString": "std::ffi::OsString",
    "BufReader": "std::io::BufReader<R>",
    "BufWriter": "std::io::BufWriter<W>",
    "LineWriter": "std::io::LineWriter<W>",
    "Cursor": "std::io::Cursor<T>",
    "IoError": "std::io::Error",
    "ErrorKind": "std::io::ErrorKind",
    "Instant": "std::time::Instant",
    "SystemTime": "std::time::SystemTime",
}

STANDARD_TYPES: Dict[str, str] = {
    **PRIMITIVE_TYPES,
    **CORE_TYPES,
    **ALLOC_TYPES,
    **STD_TYPES,
}

# Trait paths whose last segment is ambiguous or renamed in the catalog.
TRAIT_ALIASES: Dict[str, str] = {
    "fmt::Write": "FmtWrite",
    "core::fmt::Write": "FmtWrite",
    "std::fmt::Write": "FmtWrite",
    "io::Write": "IoWrite",
    "std::io::Write": "IoWrite",
}


def standard_capability_name(trait: str) -> str:
    """Capability name for a trait name, e.g. 'core::fmt::Debug' -> 'Debug'.

    Unknown traits keep their last path segment, so a custom 'Serialize'
    trait maps to a 'Serialize' capability declared by the user.
    """
    if not isinstance(trait, str) or not trait.strip():
        raise ValueError("trait must be a non-empty string")
    path = trait.strip()
    if path in TRAIT_ALIASES:
        return TRAIT_ALIASES[path]
    return path.split("::")[-1].split(".")[-1]


def standard_type_docs() -> Dict[str, str]:
    return {name: f"Value is exactly `{path}`" for name, path in STANDARD_TYPES.items()}


def load_standard_capabilities(registry: CapabilityRegistry) -> List[Capability]:
    """Register the standard trait and concrete-type markers into a registry.

    Plain names are unique across both modules, so 'Clone' and 'String'
    resolve without qualification.
    """
    traits = registry.define_capabilities(STANDARD_MODULE, STANDARD_CAPABILITIES, file=_CATALOG_FILE)
    types = registry.define_capabilities(
        STANDARD_TYPES_MODULE, standard_type_docs(), file=_CATALOG_FILE
    )
    return traits + types
